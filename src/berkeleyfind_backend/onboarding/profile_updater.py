import logging
import typing

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel

from berkeleyfind_backend.dynamodb.user_table import UserTable
from berkeleyfind_backend.models.user_models import (
    BasicInfoRequest,
    BasicInfoUpdate,
    CourseListRequest,
    CourseListUpdate,
    CourseModel,
    SessionCheckResult,
    StudyPreferences,
    StudyPreferencesRequest,
    StudyPreferencesUpdate,
    StudyTimes,
    StudyTimesRequest,
    StudyTimesUpdate,
    UserBasicInfoModel,
    UserStatus,
)
from berkeleyfind_backend.onboarding.errors import (
    NotFoundError,
    PersistenceError,
    UnauthorizedError,
    UpstreamFetchError,
)
from berkeleyfind_backend.onboarding.status_machine import next_status
from berkeleyfind_backend.s3.asset_store import AssetStore, AssetStoreError
from berkeleyfind_backend.utils.aws_env_vars import DEFAULT_PROFILE_IMAGE_FOLDER
from berkeleyfind_backend.utils.base_types import AssetPublicId, AssetUrl, UserId

_LOGGER = logging.getLogger(__name__)
_LOGGER.setLevel(logging.INFO)

BASIC_INFO_STATUSES = frozenset({UserStatus.EXPLORE, UserStatus.STARTPROFILE})
COURSE_LIST_STATUSES = frozenset({UserStatus.EXPLORE, UserStatus.STARTCOURSES})
STUDY_PREFERENCES_STATUSES = frozenset({UserStatus.EXPLORE, UserStatus.STARTSTUDYPREF})
STUDY_TIMES_STATUSES = frozenset({UserStatus.EXPLORE, UserStatus.STARTSTUDYPREF})

BASIC_INFO_SCALAR_FIELDS = (
    "email",
    "firstName",
    "lastName",
    "major",
    "gradYear",
    "userBio",
    "pronouns",
    "fbURL",
    "igURL",
)

BASIC_INFO_FAILURE_MESSAGE = "Error in modifying user basic info."
COURSE_LIST_FAILURE_MESSAGE = "Error in modifying user course list."
STUDY_PREFERENCES_FAILURE_MESSAGE = "Error in modifying user study preferences."
STUDY_TIMES_FAILURE_MESSAGE = "Error in modifying user study times."

_STORAGE_ERRORS = (ClientError, BotoCoreError)


class ProfileUpdater:
    """
    Applies one onboarding/profile step's submission to the stored user.

    Every operation authorizes against the server-held session status, writes only what
    changed in a single update, and advances the user's status by one step when the
    session is at the step the operation completes.
    """

    def __init__(
        self,
        user_table: UserTable,
        asset_store: AssetStore,
        asset_folder: str = DEFAULT_PROFILE_IMAGE_FOLDER,
    ) -> None:
        self.user_table = user_table
        self.asset_store = asset_store
        self.asset_folder = asset_folder

    def _authorize(self, session: SessionCheckResult, allowed_statuses: typing.Collection[UserStatus]) -> UserId:
        effective_status = session.userStatus or UserStatus.STARTPROFILE
        if not session.ok or not session.userId or effective_status not in allowed_statuses:
            _LOGGER.info(f"Rejecting update for user {session.userId} with status {session.userStatus}")
            raise UnauthorizedError()
        return session.userId

    def _advanced_status(
        self, session: SessionCheckResult, completed_step: UserStatus
    ) -> typing.Optional[UserStatus]:
        if session.userStatus == completed_step:
            return next_status(completed_step)
        return None

    def _persist(
        self,
        user_id: UserId,
        update: BaseModel,
        session: SessionCheckResult,
        failure_message: str,
    ) -> None:
        # A status advance only applies if no concurrent request has already moved the status on
        expected_status = session.userStatus if "userStatus" in update.model_fields_set else None
        try:
            self.user_table.update_user(user_id, update, expected_status=expected_status)
        except _STORAGE_ERRORS as e:
            raise PersistenceError(failure_message) from e

    def _fetch_basic_info(self, user_id: UserId) -> UserBasicInfoModel:
        try:
            old_user = self.user_table.get_basic_info(user_id)
        except _STORAGE_ERRORS as e:
            raise UpstreamFetchError() from e
        if old_user is None:
            raise NotFoundError()
        return old_user

    def _reconcile_profile_image(
        self, image_file: typing.Optional[str], old_user: UserBasicInfoModel
    ) -> dict[str, typing.Any]:
        if image_file and image_file != old_user.profileImage:
            if old_user.profileImagePublicID:
                self.asset_store.destroy(old_user.profileImagePublicID)
            uploaded = self.asset_store.upload(image_file, self.asset_folder)
            return {"profileImage": uploaded.secure_url, "profileImagePublicID": uploaded.public_id}

        # An absent or unchanged image clears the stored reference; the hosted asset is left in place.
        cleared: dict[str, typing.Any] = {}
        if old_user.profileImage:
            cleared["profileImage"] = None
        if old_user.profileImagePublicID:
            cleared["profileImagePublicID"] = None
        return cleared

    def _discard_uploaded_image(self, public_id: AssetPublicId) -> None:
        try:
            self.asset_store.destroy(public_id)
        except AssetStoreError:
            _LOGGER.error(f"Profile image {public_id} is orphaned; the write referencing it failed.", exc_info=True)

    def get_basic_info(self, session: SessionCheckResult) -> UserBasicInfoModel:
        user_id = self._authorize(session, tuple(UserStatus))
        return self._fetch_basic_info(user_id)

    def update_basic_info(
        self, request: BasicInfoRequest, session: SessionCheckResult
    ) -> typing.Optional[AssetUrl]:
        """
        Saves the basic-info step.

        :return: The profile image URL after the update (new, unchanged, or None when cleared).
        :raises UnauthorizedError: If the session isn't at explore or startprofile.
        :raises UpstreamFetchError: If the stored record can't be read.
        :raises NotFoundError: If there's no stored record.
        :raises PersistenceError: If the asset store or the write fails.
        """
        user_id = self._authorize(session, BASIC_INFO_STATUSES)
        old_user = self._fetch_basic_info(user_id)

        try:
            changes = self._reconcile_profile_image(request.profileImageFile, old_user)
        except AssetStoreError as e:
            raise PersistenceError(BASIC_INFO_FAILURE_MESSAGE) from e

        for field in BASIC_INFO_SCALAR_FIELDS:
            new_value = getattr(request, field)
            if new_value != getattr(old_user, field):
                changes[field] = new_value

        new_status = self._advanced_status(session, UserStatus.STARTPROFILE)
        if new_status:
            changes["userStatus"] = new_status

        update = BasicInfoUpdate(**changes)
        try:
            self._persist(user_id, update, session, BASIC_INFO_FAILURE_MESSAGE)
        except PersistenceError:
            if update.profileImagePublicID:
                self._discard_uploaded_image(update.profileImagePublicID)
            raise

        if "profileImage" in update.model_fields_set:
            return update.profileImage
        return old_user.profileImage

    def update_course_list(self, request: CourseListRequest, session: SessionCheckResult) -> list[CourseModel]:
        """Replaces the stored course list wholesale."""
        user_id = self._authorize(session, COURSE_LIST_STATUSES)

        update = CourseListUpdate(courseList=request.courseList)
        new_status = self._advanced_status(session, UserStatus.STARTCOURSES)
        if new_status:
            update = CourseListUpdate(courseList=request.courseList, userStatus=new_status)

        self._persist(user_id, update, session, COURSE_LIST_FAILURE_MESSAGE)
        return request.courseList

    def update_study_preferences(
        self, request: StudyPreferencesRequest, session: SessionCheckResult
    ) -> StudyPreferences:
        """Replaces the stored study preferences wholesale. Completing this step finishes onboarding."""
        user_id = self._authorize(session, STUDY_PREFERENCES_STATUSES)

        update = StudyPreferencesUpdate(userStudyPreferences=request.userStudyPreferences)
        new_status = self._advanced_status(session, UserStatus.STARTSTUDYPREF)
        if new_status:
            update = StudyPreferencesUpdate(userStudyPreferences=request.userStudyPreferences, userStatus=new_status)

        self._persist(user_id, update, session, STUDY_PREFERENCES_FAILURE_MESSAGE)
        return request.userStudyPreferences

    def update_study_times(self, request: StudyTimesRequest, session: SessionCheckResult) -> StudyTimes:
        user_id = self._authorize(session, STUDY_TIMES_STATUSES)
        self._persist(
            user_id,
            StudyTimesUpdate(userStudyTimes=request.userStudyTimes),
            session,
            STUDY_TIMES_FAILURE_MESSAGE,
        )
        return request.userStudyTimes
