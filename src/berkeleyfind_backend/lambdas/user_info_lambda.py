import logging
import typing

from pydantic import BaseModel, ValidationError

from berkeleyfind_backend.cloudwatch.metrics import MetricsManager
from berkeleyfind_backend.dynamodb.user_table import UserTable
from berkeleyfind_backend.models.user_models import (
    BasicInfoRequest,
    BasicInfoResponse,
    CourseListRequest,
    CourseListResponse,
    SessionCheckResult,
    StudyPreferencesRequest,
    StudyPreferencesResponse,
    StudyTimesRequest,
    StudyTimesResponse,
    UserBasicInfoResponse,
    UserStatus,
)
from berkeleyfind_backend.onboarding.errors import ProfileUpdateError
from berkeleyfind_backend.onboarding.profile_updater import (
    BASIC_INFO_STATUSES,
    COURSE_LIST_STATUSES,
    STUDY_PREFERENCES_STATUSES,
    STUDY_TIMES_STATUSES,
    ProfileUpdater,
)
from berkeleyfind_backend.onboarding.session import SessionResolver
from berkeleyfind_backend.s3.asset_store import AssetStore
from berkeleyfind_backend.utils.apig_utils import (
    ErrorCode,
    create_error_response,
    format_action_response,
    get_event_body,
    get_method,
    get_path,
)
from berkeleyfind_backend.utils.aws_env_vars import (
    get_aws_region,
    get_profile_image_bucket_name,
    get_profile_image_folder,
    get_user_table_name,
)

_LOGGER = logging.getLogger(__name__)
_LOGGER.setLevel(logging.INFO)

BASIC_INFO_GET_METRIC = "BasicInfoGet"


class _UserInfoAction(typing.NamedTuple):
    metric_name: str
    request_model: type[BaseModel]
    allowed_statuses: typing.Collection[UserStatus]
    apply: typing.Callable[[typing.Any, SessionCheckResult], BaseModel]


class UserInfoApiHandler:
    """
    Serves the profile/onboarding server actions. Every response body is the
    {status, responseData} envelope.
    """

    def __init__(
        self,
        session_resolver: SessionResolver,
        profile_updater: ProfileUpdater,
        metrics_manager: MetricsManager,
    ):
        self.session_resolver = session_resolver
        self.profile_updater = profile_updater
        self.metrics_manager = metrics_manager

        self.actions: dict[tuple[str, str], _UserInfoAction] = {
            ("POST", "/user/basic-info"): _UserInfoAction(
                "BasicInfoSave", BasicInfoRequest, BASIC_INFO_STATUSES, self._save_basic_info
            ),
            ("POST", "/user/courses"): _UserInfoAction(
                "CourseListSave", CourseListRequest, COURSE_LIST_STATUSES, self._save_course_list
            ),
            ("POST", "/user/study-preferences"): _UserInfoAction(
                "StudyPreferencesSave",
                StudyPreferencesRequest,
                STUDY_PREFERENCES_STATUSES,
                self._save_study_preferences,
            ),
            ("POST", "/user/study-times"): _UserInfoAction(
                "StudyTimesSave", StudyTimesRequest, STUDY_TIMES_STATUSES, self._save_study_times
            ),
        }

    def _save_basic_info(self, request: BasicInfoRequest, session: SessionCheckResult) -> BaseModel:
        return BasicInfoResponse(profileImage=self.profile_updater.update_basic_info(request, session))

    def _save_course_list(self, request: CourseListRequest, session: SessionCheckResult) -> BaseModel:
        return CourseListResponse(courseList=self.profile_updater.update_course_list(request, session))

    def _save_study_preferences(self, request: StudyPreferencesRequest, session: SessionCheckResult) -> BaseModel:
        return StudyPreferencesResponse(
            userStudyPreferences=self.profile_updater.update_study_preferences(request, session)
        )

    def _save_study_times(self, request: StudyTimesRequest, session: SessionCheckResult) -> BaseModel:
        return StudyTimesResponse(userStudyTimes=self.profile_updater.update_study_times(request, session))

    def _handle_action(self, event: dict, action: _UserInfoAction) -> dict:
        session = self.session_resolver.check_session(event, action.allowed_statuses)
        if not session.ok:
            self.metrics_manager.put_metric(f"{action.metric_name}Unauthorized", 1)
            return create_error_response(ErrorCode.AUTHENTICATION_FAILED, event=event)

        raw_body = get_event_body(event)
        if not raw_body:
            _LOGGER.error(f"Request body is missing for {action.metric_name}.")
            return create_error_response(ErrorCode.VALIDATION_ERROR, "Request body is missing.", event=event)

        try:
            request = action.request_model.model_validate_json(raw_body)
        except ValidationError as e:
            _LOGGER.warning(f"{action.metric_name} request body validation error for user {session.userId}")
            return create_error_response(
                ErrorCode.VALIDATION_ERROR,
                details=e.errors(include_url=False, include_context=False, include_input=False),
                event=event,
            )

        try:
            response_model = action.apply(request, session)
        except ProfileUpdateError as e:
            _LOGGER.error(f"{action.metric_name} failed for user {session.userId}: {e.message}", exc_info=True)
            self.metrics_manager.put_metric(f"{action.metric_name}Failure", 1)
            return create_error_response(e.error_code, e.message, event=event)

        self.metrics_manager.put_metric(f"{action.metric_name}Success", 1)
        return format_action_response(200, response_model.model_dump(mode="json"), event=event)

    def _handle_get_basic_info(self, event: dict) -> dict:
        session = self.session_resolver.check_session(event)
        if not session.ok:
            self.metrics_manager.put_metric(f"{BASIC_INFO_GET_METRIC}Unauthorized", 1)
            return create_error_response(ErrorCode.AUTHENTICATION_FAILED, event=event)

        try:
            user = self.profile_updater.get_basic_info(session)
        except ProfileUpdateError as e:
            _LOGGER.warning(f"Fetching basic info failed for user {session.userId}: {e.message}")
            self.metrics_manager.put_metric(f"{BASIC_INFO_GET_METRIC}Failure", 1)
            return create_error_response(e.error_code, e.message, event=event)

        self.metrics_manager.put_metric(f"{BASIC_INFO_GET_METRIC}Success", 1)
        return format_action_response(200, UserBasicInfoResponse(user=user).model_dump(mode="json"), event=event)

    def handle(self, event: dict) -> dict:
        http_method = get_method(event).upper()
        path = get_path(event)

        _LOGGER.info(f"UserInfoApiHandler: {http_method} {path}")

        try:
            if http_method == "GET" and path == "/user/basic-info":
                return self._handle_get_basic_info(event)

            action = self.actions.get((http_method, path))
            if action is None:
                _LOGGER.warning(f"Unsupported path or method for User Info: {http_method} {path}")
                return create_error_response(ErrorCode.RESOURCE_NOT_FOUND, event=event)
            return self._handle_action(event, action)

        except Exception as e:
            _LOGGER.error(f"Unexpected error in UserInfoApiHandler for {http_method} {path}: {str(e)}", exc_info=True)
            return create_error_response(ErrorCode.INTERNAL_ERROR, event=event)


def user_info_lambda_handler(event: dict[str, typing.Any], context: typing.Any) -> dict[str, typing.Any]:
    _LOGGER.debug("Global user_info_lambda_handler received event.")
    metrics_manager = MetricsManager("BerkeleyFind/UserInfo")

    try:
        user_table = UserTable(get_user_table_name())
        api_handler = UserInfoApiHandler(
            session_resolver=SessionResolver(user_table),
            profile_updater=ProfileUpdater(
                user_table=user_table,
                asset_store=AssetStore(get_profile_image_bucket_name(), get_aws_region()),
                asset_folder=get_profile_image_folder(),
            ),
            metrics_manager=metrics_manager,
        )
        return api_handler.handle(event)

    except ValueError as ve:
        _LOGGER.critical(f"Configuration error in user_info_lambda_handler: {str(ve)}", exc_info=True)
        return create_error_response(ErrorCode.INTERNAL_ERROR, "Server configuration error")
    except Exception as e:
        _LOGGER.critical(f"Error during UserInfoApiHandler: {str(e)}", exc_info=True)
        return create_error_response(ErrorCode.INTERNAL_ERROR)
    finally:
        metrics_manager.flush()
