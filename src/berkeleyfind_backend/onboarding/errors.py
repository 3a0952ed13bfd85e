from berkeleyfind_backend.utils.apig_utils import ErrorCode


class ProfileUpdateError(Exception):
    """
    Base for failures of a profile update. Each carries the response code and the
    fixed message shown to the caller; internal detail stays in the exception chain.
    """

    error_code = ErrorCode.INTERNAL_ERROR
    default_message = "Error in modifying user info."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthorizedError(ProfileUpdateError):
    """No session, or the session's status isn't allowed for the step."""

    error_code = ErrorCode.AUTHENTICATION_FAILED
    default_message = "Not authorized"


class NotFoundError(ProfileUpdateError):
    error_code = ErrorCode.RESOURCE_NOT_FOUND
    default_message = "User not found."


class UpstreamFetchError(ProfileUpdateError):
    """The stored record couldn't be read (storage unavailable, not missing)."""

    default_message = "Error in fetching old user."


class PersistenceError(ProfileUpdateError):
    """The asset store or the record store failed while applying an update."""
