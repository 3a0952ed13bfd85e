import logging
import typing

from berkeleyfind_backend.dynamodb.user_table import UserTable
from berkeleyfind_backend.onboarding.status_machine import resolve_page_access
from berkeleyfind_backend.utils.apig_utils import (
    ErrorCode,
    create_error_response,
    format_action_response,
    get_method,
    get_path,
    get_query_string_parameters,
    get_user_id_from_event,
)
from berkeleyfind_backend.utils.aws_env_vars import get_user_table_name

_LOGGER = logging.getLogger(__name__)
_LOGGER.setLevel(logging.INFO)


class OnboardingApiHandler:
    """Tells the web client whether the caller may render a page, or where to redirect instead."""

    def __init__(self, user_table: UserTable):
        self.user_table = user_table

    def _handle_access_request(self, event: dict) -> dict:
        page = get_query_string_parameters(event).get("page")
        if not page:
            return create_error_response(ErrorCode.VALIDATION_ERROR, "Missing 'page' query parameter.", event=event)

        user_id = get_user_id_from_event(event)
        user = self.user_table.get_user(user_id) if user_id else None
        current_status = user.userStatus if user else None

        access = resolve_page_access(current_status, page, has_session=bool(user_id))
        _LOGGER.info(f"Page access for user {user_id} to {page}: {access}")
        return format_action_response(200, access.model_dump(), event=event)

    def handle(self, event: dict) -> dict:
        http_method = get_method(event).upper()
        path = get_path(event)

        try:
            if http_method == "GET" and path == "/onboarding/access":
                return self._handle_access_request(event)

            _LOGGER.warning(f"Unsupported path or method for Onboarding: {http_method} {path}")
            return create_error_response(ErrorCode.RESOURCE_NOT_FOUND, event=event)

        except Exception as e:
            _LOGGER.error(f"Unexpected error in OnboardingApiHandler: {str(e)}", exc_info=True)
            return create_error_response(ErrorCode.INTERNAL_ERROR, event=event)


def onboarding_lambda_handler(event: dict[str, typing.Any], context: typing.Any) -> dict[str, typing.Any]:
    try:
        api_handler = OnboardingApiHandler(user_table=UserTable(get_user_table_name()))
        return api_handler.handle(event)

    except ValueError as ve:
        _LOGGER.critical(f"Configuration error in onboarding_lambda_handler: {str(ve)}", exc_info=True)
        return create_error_response(ErrorCode.INTERNAL_ERROR, "Server configuration error")
    except Exception as e:
        _LOGGER.critical(f"Error during OnboardingApiHandler: {str(e)}", exc_info=True)
        return create_error_response(ErrorCode.INTERNAL_ERROR)
