import enum
import re
import typing

from pydantic import BaseModel, ConfigDict, Field, field_validator

from berkeleyfind_backend.utils.base_types import AssetPublicId, AssetUrl, UserId

EMAIL_PATTERN = re.compile(r"^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$", re.IGNORECASE)
GRAD_YEAR_PATTERN = re.compile(r"\s*\d+(\.\d+)?\s*")
FACEBOOK_URL_PATTERN = re.compile(
    r"^(http://|https://)?(?:www\.)?facebook\.com/(?:(?:\w\.)*#!/)?(?:pages/)?(?:[\w\-.]*/)*([\w\-.]*)",
    re.IGNORECASE,
)
INSTAGRAM_URL_PATTERN = re.compile(
    r"(?:(?:http|https)://)?(?:www.)?(?:instagram.com|instagr.am|instagr.com)/(\w+)",
    re.IGNORECASE,
)

MIN_GRAD_YEAR = 2000
MAX_GRAD_YEAR = 2100
MAX_BIO_WORDS = 50

StudyPreferences = dict[str, typing.Any]
StudyTimes = list[typing.Any]


class UserStatus(str, enum.Enum):
    """Onboarding funnel position of a user, in funnel order."""

    STARTPROFILE = "startprofile"
    STARTCOURSES = "startcourses"
    STARTSTUDYPREF = "startstudypref"
    EXPLORE = "explore"


class CourseModel(BaseModel):
    courseAbrName: str = Field(min_length=1)
    courseLongName: str = Field(min_length=1)


class UserBasicInfoModel(BaseModel):
    """
    The basic-info view of a stored user: profile fields plus the profile image reference.
    Missing attributes are read back as None.
    """

    model_config = ConfigDict(extra="ignore")

    userId: UserId
    email: typing.Optional[str] = None
    firstName: typing.Optional[str] = None
    lastName: typing.Optional[str] = None
    major: typing.Optional[str] = None
    gradYear: typing.Optional[str] = None
    userBio: typing.Optional[str] = None
    pronouns: typing.Optional[str] = None
    fbURL: typing.Optional[str] = None
    igURL: typing.Optional[str] = None
    profileImage: typing.Optional[AssetUrl] = None
    profileImagePublicID: typing.Optional[AssetPublicId] = None


class UserModel(UserBasicInfoModel):
    """
    Pydantic model representing a user record stored in DynamoDB.

    Records are created at signup with status "startprofile"; an absent status is read as "startprofile".
    """

    userStatus: UserStatus = Field(default=UserStatus.STARTPROFILE, description="Onboarding funnel position")
    courseList: list[CourseModel] = Field(default_factory=list)
    userStudyPreferences: typing.Optional[StudyPreferences] = None
    userStudyTimes: typing.Optional[StudyTimes] = None

    @field_validator("userStatus", mode="before")
    @classmethod
    def default_missing_status(cls, v: typing.Any) -> typing.Any:
        return UserStatus.STARTPROFILE if v is None else v


class SessionCheckResult(BaseModel):
    """Outcome of resolving the caller's session against a set of allowed statuses. Never persisted."""

    ok: bool
    userId: typing.Optional[UserId] = None
    userStatus: typing.Optional[UserStatus] = None


# --- Requests ---


class BasicInfoRequest(BaseModel):
    email: str
    profileImageFile: typing.Optional[str] = None
    firstName: str = Field(min_length=1)
    lastName: str = Field(min_length=1)
    major: str = Field(min_length=1)
    gradYear: str
    userBio: str = ""
    pronouns: str = ""
    fbURL: str = ""
    igURL: str = ""

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address format.")
        return v

    @field_validator("gradYear")
    @classmethod
    def validate_grad_year(cls, v: str) -> str:
        if not GRAD_YEAR_PATTERN.fullmatch(v) or not MIN_GRAD_YEAR <= float(v) <= MAX_GRAD_YEAR:
            raise ValueError("Please enter a valid graduation year.")
        return v

    @field_validator("userBio")
    @classmethod
    def validate_bio_length(cls, v: str) -> str:
        if len(v.split(" ")) > MAX_BIO_WORDS:
            raise ValueError(f"Please keep your bio under {MAX_BIO_WORDS} words.")
        return v

    @field_validator("fbURL")
    @classmethod
    def validate_facebook_url(cls, v: str) -> str:
        if v and not FACEBOOK_URL_PATTERN.match(v):
            raise ValueError("Invalid facebook url format.")
        return v

    @field_validator("igURL")
    @classmethod
    def validate_instagram_url(cls, v: str) -> str:
        if v and not INSTAGRAM_URL_PATTERN.search(v):
            raise ValueError("Invalid instagram url format.")
        return v


class CourseListRequest(BaseModel):
    courseList: list[CourseModel]


class StudyPreferencesRequest(BaseModel):
    userStudyPreferences: StudyPreferences


class StudyTimesRequest(BaseModel):
    userStudyTimes: StudyTimes


# --- Partial updates: only explicitly set fields are persisted ---


class _PartialUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    userStatus: typing.Optional[UserStatus] = None

    def changed_fields(self) -> dict[str, typing.Any]:
        return self.model_dump(mode="json", exclude_unset=True)


class BasicInfoUpdate(_PartialUpdate):
    email: typing.Optional[str] = None
    firstName: typing.Optional[str] = None
    lastName: typing.Optional[str] = None
    major: typing.Optional[str] = None
    gradYear: typing.Optional[str] = None
    userBio: typing.Optional[str] = None
    pronouns: typing.Optional[str] = None
    fbURL: typing.Optional[str] = None
    igURL: typing.Optional[str] = None
    profileImage: typing.Optional[AssetUrl] = None
    profileImagePublicID: typing.Optional[AssetPublicId] = None


class CourseListUpdate(_PartialUpdate):
    courseList: typing.Optional[list[CourseModel]] = None


class StudyPreferencesUpdate(_PartialUpdate):
    userStudyPreferences: typing.Optional[StudyPreferences] = None


class StudyTimesUpdate(_PartialUpdate):
    userStudyTimes: typing.Optional[StudyTimes] = None


# --- Responses ---


class BasicInfoResponse(BaseModel):
    profileImage: typing.Optional[AssetUrl] = None


class CourseListResponse(BaseModel):
    courseList: list[CourseModel]


class StudyPreferencesResponse(BaseModel):
    userStudyPreferences: StudyPreferences


class StudyTimesResponse(BaseModel):
    userStudyTimes: StudyTimes


class UserBasicInfoResponse(BaseModel):
    user: UserBasicInfoModel

