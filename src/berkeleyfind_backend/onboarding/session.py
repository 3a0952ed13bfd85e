import logging
import typing

from berkeleyfind_backend.dynamodb.user_table import UserTable
from berkeleyfind_backend.models.user_models import SessionCheckResult, UserStatus
from berkeleyfind_backend.utils.apig_utils import get_user_id_from_event

_LOGGER = logging.getLogger(__name__)
_LOGGER.setLevel(logging.INFO)


class SessionResolver:
    """
    Resolves the caller of a request to a SessionCheckResult.

    The user id comes from the authorizer context; the status always comes from the stored
    record, never from the client, and is re-read on every call.
    """

    def __init__(self, user_table: UserTable) -> None:
        self.user_table = user_table

    def check_session(
        self,
        event: dict[str, typing.Any],
        allowed_statuses: typing.Optional[typing.Collection[UserStatus]] = None,
    ) -> SessionCheckResult:
        """
        :param allowed_statuses: Statuses permitted for the step; None permits any signed-in user.
        :raises ClientError: If the stored record can't be read.
        """
        user_id = get_user_id_from_event(event)
        if not user_id:
            return SessionCheckResult(ok=False)

        user = self.user_table.get_user(user_id)
        if user is None:
            # No record yet reads like an unset status: eligible for the first step only
            _LOGGER.warning(f"Session for user {user_id} has no stored record.")
            ok = allowed_statuses is None or UserStatus.STARTPROFILE in allowed_statuses
            return SessionCheckResult(ok=ok, userId=user_id)

        if allowed_statuses is not None and user.userStatus not in allowed_statuses:
            _LOGGER.info(f"User {user_id} with status '{user.userStatus.value}' not allowed for this step.")
            return SessionCheckResult(ok=False, userId=user_id, userStatus=user.userStatus)

        return SessionCheckResult(ok=True, userId=user_id, userStatus=user.userStatus)
