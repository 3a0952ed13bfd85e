from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from berkeleyfind_backend.dynamodb.user_table import UserTable
from berkeleyfind_backend.models.user_models import UserModel, UserStatus
from berkeleyfind_backend.onboarding.session import SessionResolver
from berkeleyfind_backend.utils.base_types import UserId

from test_utils.authorizer import add_authorizer_info

MOCK_USER_ID = UserId("user-123")
ONBOARDING_STATUSES = {UserStatus.EXPLORE, UserStatus.STARTCOURSES}


def create_event(user_id: str | None = MOCK_USER_ID) -> dict:
    event: dict = {"requestContext": {"http": {"method": "POST", "path": "/user/courses"}}}
    if user_id:
        add_authorizer_info(event, user_id)
    return event


def create_resolver(status: UserStatus | None) -> tuple[SessionResolver, Mock]:
    user_table = Mock(spec=UserTable)
    user_table.get_user.return_value = UserModel(userId=MOCK_USER_ID, userStatus=status) if status else None
    return SessionResolver(user_table), user_table


def test_check_session_without_authorizer_context():
    resolver, user_table = create_resolver(UserStatus.EXPLORE)

    result = resolver.check_session(create_event(user_id=None), ONBOARDING_STATUSES)

    assert result.ok is False
    assert result.userId is None
    user_table.get_user.assert_not_called()


def test_check_session_user_without_record_is_refused_past_first_step():
    resolver, _ = create_resolver(None)

    result = resolver.check_session(create_event(), ONBOARDING_STATUSES)

    assert result.ok is False
    assert result.userId == MOCK_USER_ID


@pytest.mark.parametrize("allowed_statuses", [{UserStatus.EXPLORE, UserStatus.STARTPROFILE}, None])
def test_check_session_user_without_record_is_eligible_for_first_step(allowed_statuses):
    resolver, _ = create_resolver(None)

    result = resolver.check_session(create_event(), allowed_statuses)

    assert result.ok is True
    assert result.userId == MOCK_USER_ID
    assert result.userStatus is None


def test_check_session_allowed_status():
    resolver, user_table = create_resolver(UserStatus.STARTCOURSES)

    result = resolver.check_session(create_event(), ONBOARDING_STATUSES)

    assert result.ok is True
    assert result.userId == MOCK_USER_ID
    assert result.userStatus == UserStatus.STARTCOURSES
    user_table.get_user.assert_called_once_with(MOCK_USER_ID)


def test_check_session_disallowed_status_reports_stored_status():
    resolver, _ = create_resolver(UserStatus.STARTPROFILE)

    result = resolver.check_session(create_event(), ONBOARDING_STATUSES)

    assert result.ok is False
    assert result.userStatus == UserStatus.STARTPROFILE


def test_check_session_without_allowed_statuses_accepts_any_signed_in_user():
    resolver, _ = create_resolver(UserStatus.STARTSTUDYPREF)

    assert resolver.check_session(create_event()).ok is True


def test_check_session_reads_status_on_every_call():
    resolver, user_table = create_resolver(UserStatus.STARTCOURSES)
    assert resolver.check_session(create_event(), ONBOARDING_STATUSES).ok is True

    user_table.get_user.return_value = UserModel(userId=MOCK_USER_ID, userStatus=UserStatus.STARTSTUDYPREF)
    assert resolver.check_session(create_event(), ONBOARDING_STATUSES).ok is False
    assert user_table.get_user.call_count == 2


def test_check_session_storage_failure_propagates():
    resolver, user_table = create_resolver(UserStatus.EXPLORE)
    user_table.get_user.side_effect = ClientError(
        {"Error": {"Code": "InternalServerError", "Message": "boom"}}, "GetItem"
    )

    with pytest.raises(ClientError):
        resolver.check_session(create_event(), ONBOARDING_STATUSES)
