from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TenantClass(str, Enum):
    """Identity namespaces. An email may exist once per tenant, in both at most."""

    ADMIN = "admin"
    STUDIO = "studio"


class EventStatus(str, Enum):
    PLANNING = "PLANNING"
    IN_PROGRESS = "IN_PROGRESS"
    EDITING = "EDITING"
    COMPLETED = "COMPLETED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


@dataclass
class AdminIdentity:
    id: str
    email: str
    name: str
    role: str = "SUPER_ADMIN"
    is_active: bool = True
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def profile(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StudioUser:
    id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    photography_type: Optional[str] = None
    event_types: List[str] = field(default_factory=list)
    budget: Optional[str] = None
    preferred_date: Optional[date] = None
    subscribe_newsletter: bool = False
    is_active: bool = True
    email_verified: bool = False
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def profile(self) -> Dict[str, Any]:
        data = asdict(self)
        data["event_types"] = list(self.event_types)
        return data


Identity = Union[AdminIdentity, StudioUser]

# Profile columns per tenant; the credential hash is not among them.
IDENTITY_MODELS = {
    TenantClass.ADMIN: AdminIdentity,
    TenantClass.STUDIO: StudioUser,
}

# Fields a caller may never change through a profile update.
IMMUTABLE_IDENTITY_FIELDS = frozenset(
    {"id", "email", "password", "password_hash", "created_at", "updated_at"}
)


@dataclass
class Client:
    id: str
    user_id: str
    name: str
    email: str
    phone: Optional[str] = None
    total_events: int = 0
    total_spent: float = 0.0
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass
class Event:
    id: str
    user_id: str
    client_id: str
    title: str
    event_type: str
    event_date: datetime
    budget: str
    client_name: str
    client_email: str
    description: Optional[str] = None
    event_location: Optional[str] = None
    duration: Optional[int] = None
    client_phone: Optional[str] = None
    status: EventStatus = EventStatus.PLANNING
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


# Event columns a caller may patch after creation.
EVENT_MUTABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "event_type",
        "event_date",
        "event_location",
        "duration",
        "budget",
        "client_name",
        "client_phone",
        "status",
    }
)
