from decimal import Decimal

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from berkeleyfind_backend.dynamodb.user_table import UserTable
from berkeleyfind_backend.models.user_models import (
    BasicInfoUpdate,
    CourseListUpdate,
    CourseModel,
    StudyPreferencesUpdate,
    UserModel,
    UserStatus,
)
from berkeleyfind_backend.utils.base_types import UserId

REGION = "us-west-1"
TABLE_NAME = "UserTable"


@pytest.fixture
def dynamodb_user_table(aws_credentials):
    """Creates the mocked User table."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name=REGION)
        dynamodb.create_table(
            TableName=TABLE_NAME,
            KeySchema=[
                {"AttributeName": "userId", "KeyType": "HASH"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "userId", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        yield


@pytest.fixture
def user_table(dynamodb_user_table) -> UserTable:
    return UserTable(TABLE_NAME)


def as_userid(s: str) -> UserId:
    return UserId(s)


def seed_user(user_table: UserTable, user_id: str, **fields) -> UserModel:
    user = UserModel(userId=as_userid(user_id), **fields)
    user_table.put_user(user)
    return user


def test_get_user_not_exists(user_table: UserTable):
    assert user_table.get_user(as_userid("nobody")) is None


def test_get_user_roundtrips_seeded_record(user_table: UserTable):
    seed_user(
        user_table,
        "user1",
        email="oski@berkeley.edu",
        firstName="Oski",
        userStatus=UserStatus.STARTCOURSES,
        courseList=[CourseModel(courseAbrName="CS61A", courseLongName="SICP")],
    )

    user = user_table.get_user(as_userid("user1"))
    assert user is not None
    assert user.email == "oski@berkeley.edu"
    assert user.userStatus == UserStatus.STARTCOURSES
    assert user.courseList == [CourseModel(courseAbrName="CS61A", courseLongName="SICP")]


def test_get_user_missing_status_reads_as_startprofile(user_table: UserTable):
    user_table.table.put_item(Item={"userId": "user2", "email": "a@b.co"})

    user = user_table.get_user(as_userid("user2"))
    assert user is not None
    assert user.userStatus == UserStatus.STARTPROFILE


def test_get_basic_info_projects_basic_fields(user_table: UserTable):
    seed_user(
        user_table,
        "user3",
        firstName="Oski",
        major="EECS",
        profileImage="https://example.com/a.png",
        profileImagePublicID="berkeleyfind/a.png",
        courseList=[CourseModel(courseAbrName="CS61A", courseLongName="SICP")],
    )

    info = user_table.get_basic_info(as_userid("user3"))
    assert info is not None
    assert info.firstName == "Oski"
    assert info.major == "EECS"
    assert info.profileImage == "https://example.com/a.png"
    assert info.profileImagePublicID == "berkeleyfind/a.png"
    assert not hasattr(info, "courseList")


def test_get_basic_info_not_exists(user_table: UserTable):
    assert user_table.get_basic_info(as_userid("nobody")) is None


def test_update_user_writes_only_set_fields(user_table: UserTable):
    seed_user(user_table, "user4", firstName="Oski", lastName="Bear", major="EECS")

    assert user_table.update_user(as_userid("user4"), BasicInfoUpdate(major="Data Science")) is True

    user = user_table.get_user(as_userid("user4"))
    assert user.major == "Data Science"
    assert user.firstName == "Oski"
    assert user.lastName == "Bear"


def test_update_user_explicit_none_clears_field(user_table: UserTable):
    seed_user(user_table, "user5", profileImage="https://example.com/a.png", profileImagePublicID="berkeleyfind/a")

    user_table.update_user(as_userid("user5"), BasicInfoUpdate(profileImage=None, profileImagePublicID=None))

    info = user_table.get_basic_info(as_userid("user5"))
    assert info.profileImage is None
    assert info.profileImagePublicID is None


def test_update_user_nothing_to_write(user_table: UserTable):
    seed_user(user_table, "user6")
    assert user_table.update_user(as_userid("user6"), BasicInfoUpdate()) is False


def test_update_user_missing_user_raises(user_table: UserTable):
    with pytest.raises(ClientError) as exc_info:
        user_table.update_user(as_userid("ghost"), BasicInfoUpdate(major="EECS"))
    assert exc_info.value.response["Error"]["Code"] == "ConditionalCheckFailedException"
    assert user_table.get_user(as_userid("ghost")) is None


def test_update_user_replaces_course_list(user_table: UserTable):
    seed_user(
        user_table,
        "user7",
        courseList=[CourseModel(courseAbrName="CS61A", courseLongName="SICP")],
    )

    user_table.update_user(as_userid("user7"), CourseListUpdate(courseList=[]))

    assert user_table.get_user(as_userid("user7")).courseList == []


def test_update_user_advances_status_when_expected_matches(user_table: UserTable):
    seed_user(user_table, "user8", userStatus=UserStatus.STARTCOURSES)

    user_table.update_user(
        as_userid("user8"),
        CourseListUpdate(courseList=[], userStatus=UserStatus.STARTSTUDYPREF),
        expected_status=UserStatus.STARTCOURSES,
    )

    assert user_table.get_user(as_userid("user8")).userStatus == UserStatus.STARTSTUDYPREF


def test_update_user_rejects_stale_expected_status(user_table: UserTable):
    seed_user(user_table, "user9", userStatus=UserStatus.STARTSTUDYPREF)

    with pytest.raises(ClientError):
        user_table.update_user(
            as_userid("user9"),
            CourseListUpdate(courseList=[], userStatus=UserStatus.STARTSTUDYPREF),
            expected_status=UserStatus.STARTCOURSES,
        )

    assert user_table.get_user(as_userid("user9")).userStatus == UserStatus.STARTSTUDYPREF


def test_update_user_expected_startprofile_matches_missing_status(user_table: UserTable):
    user_table.table.put_item(Item={"userId": "user10"})

    user_table.update_user(
        as_userid("user10"),
        BasicInfoUpdate(firstName="Oski", userStatus=UserStatus.STARTCOURSES),
        expected_status=UserStatus.STARTPROFILE,
    )

    user = user_table.get_user(as_userid("user10"))
    assert user.userStatus == UserStatus.STARTCOURSES
    assert user.firstName == "Oski"


def test_update_user_stores_float_preferences(user_table: UserTable):
    seed_user(user_table, "user11", userStatus=UserStatus.EXPLORE)
    preferences = {"groupSize": 3, "weight": 0.5, "modes": ["in-person"], "nested": {"ratio": 1.25}}

    user_table.update_user(as_userid("user11"), StudyPreferencesUpdate(userStudyPreferences=preferences))

    stored = user_table.get_user(as_userid("user11")).userStudyPreferences
    assert stored["weight"] == Decimal("0.5")
    assert stored["nested"]["ratio"] == Decimal("1.25")
    assert stored["modes"] == ["in-person"]
