from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from photocap.storage.models import EventStatus

PhotographyType = Literal[
    "Portrait Photography",
    "Wedding Photography",
    "Event Photography",
    "Product Photography",
    "Fashion Photography",
    "Nature Photography",
    "Corporate Photography",
]
EventType = Literal[
    "Weddings",
    "Birthdays",
    "Corporate Events",
    "Family Portraits",
    "Maternity Shoots",
    "Engagement Sessions",
    "Graduation Photos",
    "Anniversary Celebrations",
]
BudgetRange = Literal["5000-15000", "15000-30000", "30000-50000", "50000-100000", "100000+"]

MIN_STUDIO_AGE = 13

_EMAIL_LOCAL_PART = re.compile(r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+$")
_EMAIL_DOMAIN_LABEL = re.compile(r"^[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?$")
_PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{0,15}$")
_STRONG_PASSWORD = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def _validate_email(value: str) -> str:
    normalized = value.strip().lower()
    if len(normalized) > 254:
        raise ValueError("email address too long")
    local, sep, domain = normalized.partition("@")
    if not sep or not local or not domain or len(local) > 64:
        raise ValueError("Invalid email format")
    if not _EMAIL_LOCAL_PART.match(local):
        raise ValueError("Invalid email format")
    domain_parts = domain.split(".")
    if len(domain_parts) < 2:
        raise ValueError("Invalid email format")
    for label in domain_parts:
        if len(label) > 63 or not _EMAIL_DOMAIN_LABEL.match(label):
            raise ValueError("Invalid email format")
    return normalized


def _validate_strong_password(value: str) -> str:
    """Studio passwords: 8+ characters with upper, lower and a digit."""
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if len(value) > 128:
        raise ValueError("Password must be at most 128 characters")
    if not _STRONG_PASSWORD.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )
    return value


def _validate_phone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not _PHONE_PATTERN.match(value):
        raise ValueError("Invalid phone number format")
    return value


def _age_on(born: date, today: date) -> int:
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


def _validate_date_of_birth(value: Optional[date]) -> Optional[date]:
    if value is None:
        return None
    if _age_on(value, date.today()) < MIN_STUDIO_AGE:
        raise ValueError(f"You must be at least {MIN_STUDIO_AGE} years old")
    return value


def _validate_preferred_date(value: Optional[date]) -> Optional[date]:
    if value is None:
        return None
    if value < date.today():
        raise ValueError("Preferred date must be in the future")
    return value


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CamelModel(BaseModel):
    """JSON bodies use camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorDetail(BaseModel):
    field: str
    message: str


class ErrorBody(BaseModel):
    """Uniform error body. ``errors`` is present only for field-level failures."""

    code: str
    message: str
    errors: Optional[List[ErrorDetail]] = None


class MessageResponse(BaseModel):
    message: str


# requests
class LoginRequest(CamelModel):
    email: str
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def _validate_login_email(cls, value: str) -> str:
        return _validate_email(value)


class AdminRegisterRequest(CamelModel):
    email: str
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field(..., min_length=2, max_length=100)
    role: Literal["SUPER_ADMIN"] = "SUPER_ADMIN"

    @field_validator("email")
    @classmethod
    def _validate_register_email(cls, value: str) -> str:
        return _validate_email(value)


class AdminProfileUpdate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)


class AdminPasswordChange(CamelModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=6, max_length=128)


class StudioRegisterRequest(CamelModel):
    email: str
    password: str
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    photography_type: Optional[PhotographyType] = None
    event_types: List[EventType] = Field(default_factory=list)
    budget: Optional[BudgetRange] = None
    preferred_date: Optional[date] = None
    subscribe_newsletter: bool = False

    @field_validator("email")
    @classmethod
    def _validate_register_email(cls, value: str) -> str:
        return _validate_email(value)

    @field_validator("password")
    @classmethod
    def _validate_password(cls, value: str) -> str:
        return _validate_strong_password(value)

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, value: Optional[str]) -> Optional[str]:
        return _validate_phone(value)

    @field_validator("date_of_birth")
    @classmethod
    def _validate_dob(cls, value: Optional[date]) -> Optional[date]:
        return _validate_date_of_birth(value)

    @field_validator("preferred_date")
    @classmethod
    def _validate_preferred(cls, value: Optional[date]) -> Optional[date]:
        return _validate_preferred_date(value)


class StudioProfileUpdate(CamelModel):
    """Partial profile update. Unknown keys, including email and password, are rejected."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    photography_type: Optional[PhotographyType] = None
    event_types: Optional[List[EventType]] = None
    budget: Optional[BudgetRange] = None
    preferred_date: Optional[date] = None
    subscribe_newsletter: Optional[bool] = None

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, value: Optional[str]) -> Optional[str]:
        return _validate_phone(value)

    @field_validator("date_of_birth")
    @classmethod
    def _validate_dob(cls, value: Optional[date]) -> Optional[date]:
        return _validate_date_of_birth(value)

    @field_validator("preferred_date")
    @classmethod
    def _validate_preferred(cls, value: Optional[date]) -> Optional[date]:
        return _validate_preferred_date(value)


class StudioPasswordChange(CamelModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _validate_new_password(cls, value: str) -> str:
        return _validate_strong_password(value)


class EventCreateRequest(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    event_type: str = Field(..., min_length=1, max_length=100)
    event_date: datetime
    event_location: Optional[str] = Field(default=None, min_length=1, max_length=200)
    duration: Optional[int] = Field(default=None, ge=1, le=24)
    budget: str = Field(..., min_length=1, max_length=50)
    client_name: str = Field(..., min_length=1, max_length=100)
    client_email: str
    client_phone: Optional[str] = None
    status: EventStatus = EventStatus.PLANNING

    @field_validator("client_email")
    @classmethod
    def _validate_client_email(cls, value: str) -> str:
        return _validate_email(value)

    @field_validator("client_phone")
    @classmethod
    def _validate_client_phone(cls, value: Optional[str]) -> Optional[str]:
        return _validate_phone(value)

    @field_validator("event_date")
    @classmethod
    def _event_date_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class EventUpdateRequest(CamelModel):
    """Patch of event details. The client of an event cannot be changed."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    event_type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    event_date: Optional[datetime] = None
    event_location: Optional[str] = Field(default=None, min_length=1, max_length=200)
    duration: Optional[int] = Field(default=None, ge=1, le=24)
    budget: Optional[str] = Field(default=None, min_length=1, max_length=50)
    client_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    client_phone: Optional[str] = None
    status: Optional[EventStatus] = None

    @field_validator("client_phone")
    @classmethod
    def _validate_client_phone(cls, value: Optional[str]) -> Optional[str]:
        return _validate_phone(value)

    @field_validator("event_date")
    @classmethod
    def _event_date_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


# responses
class AdminProfile(CamelModel):
    id: str
    email: str
    name: str
    role: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class StudioProfile(CamelModel):
    id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    photography_type: Optional[str] = None
    event_types: List[str] = Field(default_factory=list)
    budget: Optional[str] = None
    preferred_date: Optional[date] = None
    subscribe_newsletter: bool = False
    is_active: bool
    email_verified: bool = False
    created_at: datetime
    updated_at: datetime


class AdminAuthResponse(CamelModel):
    message: str
    token: str
    profile: AdminProfile


class AdminProfileResponse(CamelModel):
    message: str
    profile: AdminProfile


class AdminTokenStatus(CamelModel):
    message: str
    valid: bool = True
    profile: AdminProfile


class StudioAuthResponse(CamelModel):
    message: str
    token: str
    profile: StudioProfile


class StudioProfileResponse(CamelModel):
    message: str
    profile: StudioProfile


class StudioAuthStatus(CamelModel):
    authenticated: bool = True
    profile: StudioProfile


class EventOut(CamelModel):
    id: str
    client_id: str
    title: str
    description: Optional[str] = None
    event_type: str
    event_date: datetime
    event_location: Optional[str] = None
    duration: Optional[int] = None
    budget: str
    client_name: str
    client_email: str
    client_phone: Optional[str] = None
    status: EventStatus
    created_at: datetime
    updated_at: datetime


class EventResponse(CamelModel):
    message: str
    event: EventOut


class EventListResponse(CamelModel):
    events: List[EventOut]


class ClientEventSummary(CamelModel):
    id: str
    title: str
    event_date: datetime
    status: EventStatus


class ClientOut(CamelModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    total_events: int
    total_spent: float
    created_at: datetime
    recent_events: List[ClientEventSummary] = Field(default_factory=list)


class ClientListResponse(CamelModel):
    clients: List[ClientOut]
