from __future__ import annotations

import threading
import uuid
from dataclasses import fields as dataclass_fields, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from photocap.logging import get_logger
from photocap.storage.errors import ConstraintViolation
from photocap.storage.models import (
    EVENT_MUTABLE_FIELDS,
    IDENTITY_MODELS,
    IMMUTABLE_IDENTITY_FIELDS,
    Client,
    Event,
    Identity,
    TenantClass,
)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class MemoryStore:
    """In-memory backing store used for tests and local development.

    Identities are copied on the way out so callers never hold a reference to
    the stored record.
    """

    def __init__(self) -> None:
        self.logger = get_logger(__name__)
        self.identities: Dict[TenantClass, Dict[str, Identity]] = {
            tenant: {} for tenant in TenantClass
        }
        self.credentials: Dict[Tuple[TenantClass, str], str] = {}
        self.clients: Dict[str, Client] = {}
        self.events: Dict[str, Event] = {}
        # RLock for all data operations; nested acquisition happens in the booking paths
        self._data_lock = threading.RLock()

    # identities
    def create_identity(
        self, tenant: TenantClass, email: str, password_hash: str, **fields
    ) -> Identity:
        tenant = TenantClass(tenant)
        normalized = _normalize_email(email)
        model = IDENTITY_MODELS[tenant]
        with self._data_lock:
            bucket = self.identities[tenant]
            if any(existing.email == normalized for existing in bucket.values()):
                raise ConstraintViolation(
                    "email already exists", field="email", detail={"tenant": tenant.value}
                )
            identity = model(id=str(uuid.uuid4()), email=normalized, **fields)
            bucket[identity.id] = identity
            self.credentials[(tenant, identity.id)] = password_hash
            return replace(identity)

    def get_identity_by_email(self, tenant: TenantClass, email: str) -> Optional[Identity]:
        normalized = _normalize_email(email)
        with self._data_lock:
            for identity in self.identities[TenantClass(tenant)].values():
                if identity.email == normalized:
                    return replace(identity)
            return None

    def get_identity(self, tenant: TenantClass, identity_id: str) -> Optional[Identity]:
        with self._data_lock:
            identity = self.identities[TenantClass(tenant)].get(identity_id)
            return replace(identity) if identity else None

    def update_identity(
        self, tenant: TenantClass, identity_id: str, **fields
    ) -> Optional[Identity]:
        forbidden = IMMUTABLE_IDENTITY_FIELDS.intersection(fields)
        if forbidden:
            raise ValueError(f"cannot update {', '.join(sorted(forbidden))} via update_identity")
        unknown = set(fields) - {f.name for f in dataclass_fields(IDENTITY_MODELS[TenantClass(tenant)])}
        if unknown:
            raise ValueError(f"unknown identity fields: {', '.join(sorted(unknown))}")
        with self._data_lock:
            bucket = self.identities[TenantClass(tenant)]
            identity = bucket.get(identity_id)
            if not identity:
                return None
            updated = replace(identity, **fields, updated_at=datetime.now(timezone.utc))
            bucket[identity_id] = updated
            return replace(updated)

    def get_password_hash(self, tenant: TenantClass, identity_id: str) -> Optional[str]:
        with self._data_lock:
            return self.credentials.get((TenantClass(tenant), identity_id))

    def save_password(self, tenant: TenantClass, identity_id: str, password_hash: str) -> None:
        tenant = TenantClass(tenant)
        with self._data_lock:
            if identity_id not in self.identities[tenant]:
                raise ConstraintViolation(
                    "identity not found for credentials", detail={"id": identity_id}
                )
            self.credentials[(tenant, identity_id)] = password_hash

    # bookings
    def create_event(
        self,
        user_id: str,
        *,
        client_name: str,
        client_email: str,
        client_phone: Optional[str] = None,
        **fields,
    ) -> Event:
        normalized = _normalize_email(client_email)
        now = datetime.now(timezone.utc)
        with self._data_lock:
            client = self._find_client(user_id, normalized)
            if client is None:
                client = Client(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    name=client_name,
                    email=normalized,
                    phone=client_phone,
                )
                self.clients[client.id] = client
            else:
                client.name = client_name
                if client_phone:
                    client.phone = client_phone
            client.total_events += 1
            client.updated_at = now
            event = Event(
                id=str(uuid.uuid4()),
                user_id=user_id,
                client_id=client.id,
                client_name=client_name,
                client_email=normalized,
                client_phone=client_phone,
                **fields,
            )
            self.events[event.id] = event
            return replace(event)

    def _find_client(self, user_id: str, email: str) -> Optional[Client]:
        return next(
            (
                c
                for c in self.clients.values()
                if c.user_id == user_id and c.email == email
            ),
            None,
        )

    def get_event(self, user_id: str, event_id: str) -> Optional[Event]:
        with self._data_lock:
            event = self.events.get(event_id)
            if not event or event.user_id != user_id:
                return None
            return replace(event)

    def list_events(self, user_id: str) -> List[Event]:
        with self._data_lock:
            owned = [replace(e) for e in self.events.values() if e.user_id == user_id]
        return sorted(owned, key=lambda e: e.created_at, reverse=True)

    def update_event(self, user_id: str, event_id: str, **fields) -> Optional[Event]:
        unknown = set(fields) - EVENT_MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"cannot update {', '.join(sorted(unknown))} via update_event")
        with self._data_lock:
            event = self.events.get(event_id)
            if not event or event.user_id != user_id:
                return None
            updated = replace(event, **fields, updated_at=datetime.now(timezone.utc))
            self.events[event_id] = updated
            return replace(updated)

    def delete_event(self, user_id: str, event_id: str) -> bool:
        with self._data_lock:
            event = self.events.get(event_id)
            if not event or event.user_id != user_id:
                return False
            self.events.pop(event_id, None)
            client = self.clients.get(event.client_id)
            if client and client.total_events > 0:
                client.total_events -= 1
                client.updated_at = datetime.now(timezone.utc)
            return True

    def get_client(self, user_id: str, client_id: str) -> Optional[Client]:
        with self._data_lock:
            client = self.clients.get(client_id)
            if not client or client.user_id != user_id:
                return None
            return replace(client)

    def list_clients(
        self, user_id: str, *, recent_events: int = 5
    ) -> List[Tuple[Client, List[Event]]]:
        with self._data_lock:
            owned = [replace(c) for c in self.clients.values() if c.user_id == user_id]
            by_client: Dict[str, List[Event]] = {}
            for event in self.events.values():
                if event.user_id == user_id:
                    by_client.setdefault(event.client_id, []).append(replace(event))
        owned.sort(key=lambda c: c.created_at, reverse=True)
        results = []
        for client in owned:
            events = sorted(
                by_client.get(client.id, []), key=lambda e: e.event_date, reverse=True
            )
            results.append((client, events[:recent_events]))
        return results

    # lifecycle
    def verify_connection(self) -> bool:
        return True

    def close(self) -> None:
        return None
