from __future__ import annotations

from typing import List, Optional, Protocol, Tuple

from photocap.logging import get_logger
from photocap.service.errors import NotFound
from photocap.storage.models import Client, Event

logger = get_logger(__name__)


class BookingStore(Protocol):
    def create_event(
        self,
        user_id: str,
        *,
        client_name: str,
        client_email: str,
        client_phone: Optional[str] = None,
        **fields,
    ) -> Event: ...

    def get_event(self, user_id: str, event_id: str) -> Optional[Event]: ...

    def list_events(self, user_id: str) -> List[Event]: ...

    def update_event(self, user_id: str, event_id: str, **fields) -> Optional[Event]: ...

    def delete_event(self, user_id: str, event_id: str) -> bool: ...

    def list_clients(
        self, user_id: str, *, recent_events: int = 5
    ) -> List[Tuple[Client, List[Event]]]: ...


class BookingService:
    """Events and clients owned by a studio user.

    Every lookup is scoped by owner; another user's event is reported as
    missing rather than forbidden.
    """

    def __init__(self, store: BookingStore, *, recent_events: int = 5) -> None:
        self.store = store
        self.recent_events = recent_events

    def create_event(self, user_id: str, **fields) -> Event:
        event = self.store.create_event(user_id, **fields)
        logger.info(
            "event_created", user_id=user_id, event_id=event.id, client_id=event.client_id
        )
        return event

    def get_event(self, user_id: str, event_id: str) -> Event:
        event = self.store.get_event(user_id, event_id)
        if not event:
            raise NotFound("Event not found")
        return event

    def list_events(self, user_id: str) -> List[Event]:
        return self.store.list_events(user_id)

    def update_event(self, user_id: str, event_id: str, **fields) -> Event:
        event = self.store.update_event(user_id, event_id, **fields)
        if not event:
            raise NotFound("Event not found")
        logger.info("event_updated", user_id=user_id, event_id=event_id, fields=sorted(fields))
        return event

    def delete_event(self, user_id: str, event_id: str) -> None:
        if not self.store.delete_event(user_id, event_id):
            raise NotFound("Event not found")
        logger.info("event_deleted", user_id=user_id, event_id=event_id)

    def list_clients(self, user_id: str) -> List[Tuple[Client, List[Event]]]:
        return self.store.list_clients(user_id, recent_events=self.recent_events)
