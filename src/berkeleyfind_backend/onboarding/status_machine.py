"""
The onboarding funnel: startprofile -> startcourses -> startstudypref -> explore.

Each onboarding page belongs to exactly one status. A user may only view the page
of their current status; any other page redirects to the page of their status.
Page redirects are a convenience only: every write re-checks the stored status.
"""

import typing

from pydantic import BaseModel

from berkeleyfind_backend.models.user_models import UserStatus

LOGIN_URL = "/login?redirect=true"

STATUS_ORDER: tuple[UserStatus, ...] = (
    UserStatus.STARTPROFILE,
    UserStatus.STARTCOURSES,
    UserStatus.STARTSTUDYPREF,
    UserStatus.EXPLORE,
)

STATUS_TO_URL: dict[UserStatus, str] = {
    UserStatus.STARTPROFILE: "/start/profile",
    UserStatus.STARTCOURSES: "/start/courses",
    UserStatus.STARTSTUDYPREF: "/start/studypref",
    UserStatus.EXPLORE: "/explore",
}

PAGE_TO_STEP: dict[str, UserStatus] = {
    **{url: status for status, url in STATUS_TO_URL.items()},
    "/start/studytimes": UserStatus.STARTSTUDYPREF,
}


class StepAccess(BaseModel):
    allow: bool
    redirectTarget: typing.Optional[str] = None


def next_status(status: UserStatus) -> typing.Optional[UserStatus]:
    """The status following `status` in the funnel, or None for the terminal status."""
    index = STATUS_ORDER.index(status)
    if index + 1 < len(STATUS_ORDER):
        return STATUS_ORDER[index + 1]
    return None


def resolve_accessible_step(
    current_status: typing.Optional[UserStatus],
    requested_step: UserStatus,
) -> StepAccess:
    """
    Decides whether a signed-in user may view the page of `requested_step`.

    A user without a stored status yet is treated as being at the first step.
    """
    effective_status = current_status or STATUS_ORDER[0]
    if effective_status == requested_step:
        return StepAccess(allow=True)
    return StepAccess(allow=False, redirectTarget=STATUS_TO_URL[effective_status])


def resolve_login_redirect(current_status: typing.Optional[UserStatus]) -> str:
    """Where a signed-in user landing on the login page is sent."""
    return STATUS_TO_URL[current_status or STATUS_ORDER[0]]


def resolve_page_access(
    current_status: typing.Optional[UserStatus],
    page: str,
    has_session: bool = True,
) -> StepAccess:
    """
    Page-level wrapper around resolve_accessible_step.

    Sessionless requests go to the login page; signed-in users landing on the login
    page go to their status's page. Pages outside the funnel belong to explore.
    """
    path = page.split("?")[0].rstrip("/")
    if path == "/login":
        if has_session:
            return StepAccess(allow=False, redirectTarget=resolve_login_redirect(current_status))
        return StepAccess(allow=True)

    if not has_session:
        return StepAccess(allow=False, redirectTarget=LOGIN_URL)

    requested_step = PAGE_TO_STEP.get(path, UserStatus.EXPLORE)
    return resolve_accessible_step(current_status, requested_step)
