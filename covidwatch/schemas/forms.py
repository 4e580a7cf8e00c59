"""Request forms for every JSON body the API accepts."""

from datetime import date, datetime, time, timedelta
from typing import Annotated, Any, ClassVar

from pydantic import Field

from covidwatch.core.validation import (
    RequestForm,
    check,
    contains,
    exists,
    is_email,
    is_float,
    is_string,
    length,
    matches,
    max_bytes,
    one_of,
    trimmed,
)
from covidwatch.schemas.user import SIGNUP_ROLES

# bcrypt ignores everything past 72 bytes
BCRYPT_MAX_BYTES = 72


def check_in_date(value: str) -> date:
    """Parse ``YYYY-M-D`` and keep it within [today - 30 days, today + 1 day]."""
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValueError("Invalid date") from None
    today = date.today()
    if parsed > today + timedelta(days=1):
        raise ValueError("Date cannot be in the future")
    if parsed < today - timedelta(days=30):
        raise ValueError("Date cannot be more than 30 days in the past")
    return parsed


def check_in_time(value: str) -> time:
    hours, minutes, seconds = (int(part) for part in value.split(":"))
    if not (0 <= hours <= 23 and 0 <= minutes <= 59 and 0 <= seconds <= 59):
        raise ValueError("Invalid time values")
    return time(hours, minutes, seconds)


def _person_name(label: str) -> Any:
    return Annotated[
        Any,
        exists(f"{label} is required"),
        is_string(f"{label} must be a string"),
        trimmed(),
        length(1, 50, f"{label} must be 1-50 characters"),
        matches(
            r"[a-zA-Z\s\-']+",
            f"{label} can only contain letters, spaces, hyphens, and apostrophes",
        ),
    ]


Username = Annotated[
    Any,
    exists("Username is required"),
    is_string("Username must be a string"),
    trimmed(),
    length(3, 30, "Username must be 3-30 characters"),
    matches(r"[a-zA-Z0-9_]+", "Username can only contain letters, numbers, and underscores"),
]

GivenName = _person_name("First name")
FamilyName = _person_name("Last name")


class LoginForm(RequestForm):
    form_name: ClassVar[str] = "login"

    user: Username = None
    password: Annotated[
        Any,
        exists("Password is required"),
        is_string("Password must be a string"),
        length(1, 100, "Password is required"),
    ] = Field(None, alias="pass")


class SignupForm(RequestForm):
    form_name: ClassVar[str] = "signup"

    user: Username = None
    password: Annotated[
        Any,
        exists("Password is required"),
        is_string("Password must be a string"),
        length(8, 100, "Password must be at least 8 characters"),
        max_bytes(BCRYPT_MAX_BYTES, "Password must be at most 72 bytes"),
        contains(r"[a-z]", "Password must contain at least one lowercase letter"),
        contains(r"[A-Z]", "Password must contain at least one uppercase letter"),
        contains(r"[0-9]", "Password must contain at least one number"),
    ] = Field(None, alias="pass")
    email: Annotated[
        Any,
        exists("Email is required"),
        is_string("Email must be a string"),
        trimmed(),
        length(0, 254, "Email must be less than 254 characters"),
        is_email("Invalid email address"),
    ] = None
    given_name: GivenName = None
    family_name: FamilyName = None
    user_type: Annotated[
        Any,
        exists("User type is required"),
        is_string("User type must be a string"),
        one_of(SIGNUP_ROLES, 'User type must be either "user" or "manager"'),
    ] = Field(None, alias="type")


class CheckInForm(RequestForm):
    form_name: ClassVar[str] = "check_in"

    check_in_code: Annotated[
        Any,
        exists("Check-in code is required"),
        is_string("Check-in code must be a string"),
        trimmed(),
        length(4, 10, "Check-in code must be 4-10 characters"),
        matches(r"[a-zA-Z0-9]+", "Check-in code can only contain letters and numbers"),
    ] = Field(None, alias="check_in")
    date_: Annotated[
        Any,
        exists("Date is required"),
        is_string("Date must be a string"),
        matches(r"\d{4}-\d{1,2}-\d{1,2}", "Date must be in YYYY-MM-DD format"),
        check(check_in_date),
    ] = Field(None, alias="date")
    time_: Annotated[
        Any,
        exists("Time is required"),
        is_string("Time must be a string"),
        matches(r"\d{1,2}:\d{2}:\d{2}", "Time must be in HH:MM:SS format"),
        check(check_in_time),
    ] = Field(None, alias="time")


class MarkerForm(RequestForm):
    form_name: ClassVar[str] = "marker"

    longitude: Annotated[
        Any,
        exists("Longitude is required", allow_falsy=True),
        is_float(-180, 180, "Longitude must be between -180 and 180"),
    ] = Field(None, alias="long")
    latitude: Annotated[
        Any,
        exists("Latitude is required", allow_falsy=True),
        is_float(-90, 90, "Latitude must be between -90 and 90"),
    ] = Field(None, alias="lat")
