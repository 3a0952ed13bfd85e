import base64
import enum
import json
import logging
import re
import typing

from berkeleyfind_backend.utils.base_types import UserId

_LOGGER = logging.getLogger(__name__)


QueryParams = typing.NewType("QueryParams", dict[str, str])

ALLOWED_ORIGIN_PATTERNS = [r"^https://(www\.)?berkeleyfind\.com$"]


class ErrorCode(enum.Enum):
    VALIDATION_ERROR = (400, "Invalid request.")
    AUTHENTICATION_FAILED = (401, "Not authorized")
    RESOURCE_NOT_FOUND = (404, "Resource not found.")
    INTERNAL_ERROR = (500, "Internal server error.")

    @property
    def status_code(self) -> int:
        return self.value[0]

    @property
    def default_message(self) -> str:
        return self.value[1]


def get_event_body(event: dict) -> bytes:
    if event.get("body") is None:
        return b""
    if event.get("isBase64Encoded"):
        return base64.b64decode(event["body"])
    return event["body"].encode("utf-8")


def get_method(event: dict) -> str:
    return event.get("requestContext", {}).get("http", {}).get("method", "UNKNOWN")


def get_path(event: dict) -> str:
    return event.get("requestContext", {}).get("http", {}).get("path", "")


def get_query_string_parameters(event: dict) -> QueryParams:
    return event.get("queryStringParameters") or QueryParams({})


def get_user_id_from_event(event: dict[str, typing.Any]) -> typing.Optional[UserId]:
    """
    Extracts user ID from the Lambda event context provided by the custom Lambda Authorizer.
    The authorizer places the decoded JWT payload into the 'lambda' key.
    """
    try:
        user_id = event.get("requestContext", {}).get("authorizer", {}).get("lambda", {}).get("sub")
        if user_id:
            return UserId(str(user_id))

        _LOGGER.warning("User ID ('sub') not found in authorizer's lambda context.")
        return None
    except Exception as e:
        _LOGGER.error("Error extracting user_id from event: %s", str(e))
        return None


def get_allowed_origin(event: dict[str, typing.Any]) -> str:
    """
    Validates the Origin header against allowed patterns and returns it if valid.

    Allowed Origins:
    - localhost/127.0.0.1 (any port) - for local development
    - berkeleyfind.com (with or without www)

    :returns: The origin if valid, otherwise "null" (which causes browser to deny the response)
    """
    origin = (event.get("headers") or {}).get("origin", "")

    # No origin header present (e.g., curl testing, direct API calls)
    if not origin:
        return "*"

    if origin.startswith("http://localhost:") or origin.startswith("http://127.0.0.1:"):
        return origin

    for pattern in ALLOWED_ORIGIN_PATTERNS:
        if re.match(pattern, origin):
            return origin

    _LOGGER.warning(f"Origin not in allowed patterns: {origin}")
    return "null"


def format_lambda_response(
    status_code: int,
    body: typing.Any,
    *,
    event: typing.Optional[dict[str, typing.Any]] = None,
    additional_headers: typing.Optional[dict[str, str]] = None,
) -> dict[str, typing.Any]:
    """
    Formats API Gateway proxy responses with CORS headers.
    """
    allowed_origin = get_allowed_origin(event) if event else "*"

    headers = {
        "Content-Type": "application/json",
        "Access-Control-Allow-Origin": allowed_origin,
        "Access-Control-Allow-Headers": "Content-Type,Authorization,X-Amz-Date,X-Api-Key,X-Amz-Security-Token",
        "Access-Control-Allow-Methods": "OPTIONS,GET,POST",
    }
    if additional_headers:
        headers.update(additional_headers)

    return {
        "statusCode": status_code,
        "headers": headers,
        "body": json.dumps(body) if body is not None else None,
    }


def format_action_response(
    status_code: int,
    response_data: dict[str, typing.Any],
    *,
    event: typing.Optional[dict[str, typing.Any]] = None,
) -> dict[str, typing.Any]:
    """
    Wraps response data in the {status, responseData} envelope the web client expects.
    The HTTP status code always matches the envelope's status.
    """
    return format_lambda_response(
        status_code,
        {"status": status_code, "responseData": response_data},
        event=event,
    )


def create_error_response(
    error_code: ErrorCode,
    message: typing.Optional[str] = None,
    *,
    details: typing.Any = None,
    event: typing.Optional[dict[str, typing.Any]] = None,
) -> dict[str, typing.Any]:
    response_data: dict[str, typing.Any] = {
        "error": message or error_code.default_message,
        "code": error_code.name,
    }
    if details is not None:
        response_data["details"] = details
    return format_action_response(error_code.status_code, response_data, event=event)
