from __future__ import annotations

import uuid
from abc import abstractmethod
from typing import TYPE_CHECKING, Any

import pydantic
import structlog

from refugio.collections import EVENTS, Filter
from refugio.core.clock import touch, utcnow
from refugio.data.base import ChangeFeed, ChangePayload, ChangeType, DataClient
from refugio.repositories.base import EntityRepository, validation_error
from refugio.repositories.local import LocalRepository
from refugio.repositories.remote import RemoteRepository
from refugio.schemas import Event, EventRegistration, RegistrationForm, RegistrationStatus
from refugio.services.error_codes import ErrorCode
from refugio.services.exceptions import ConflictError, NotFoundError
from refugio.storage.base import KeyValueStore
from refugio.storage.collection import JsonCollection

if TYPE_CHECKING:
    from refugio.auth.identity import Identity

logger = structlog.get_logger(__name__)

REGISTRATIONS_TABLE = "event_registrations"
REGISTRATIONS_KEY = "refugio_event_registrations"


def _event_not_found(event_id: str) -> NotFoundError:
    return NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found", {"event_id": event_id})


class EventOperations(EntityRepository[Event]):
    """Registration operations shared by both event backings."""

    @abstractmethod
    def _register_attendance(self, event_id: str, row: dict[str, Any]) -> tuple[dict, dict]:
        """Insert the registration and bump the counter as one unit."""

    @abstractmethod
    def _registration_rows(self, filters: list[Filter]) -> list[dict[str, Any]]:
        """Registrations matching filters, oldest first."""

    @abstractmethod
    def _patch_registration(self, id: str, patch: dict[str, Any], expected_version: int) -> dict | None:
        """Apply patch to one registration."""

    def register(
        self,
        event_id: str,
        form: RegistrationForm,
        identity: "Identity | None" = None,
    ) -> tuple[EventRegistration, Event]:
        now = utcnow()
        row = {
            "id": str(uuid.uuid4()),
            "event_id": event_id,
            "user_id": identity.id if identity else None,
            "name": form.name.strip(),
            "email": form.email.strip(),
            "phone": form.phone.strip() or None,
            "guests": form.guests,
            "special_requests": form.special_requests.strip() or None,
            "status": RegistrationStatus.CONFIRMED,
            "created_at": now,
            "updated_at": now,
            "version": 1,
        }
        try:
            registration = EventRegistration.model_validate(row)
        except pydantic.ValidationError as exc:
            raise validation_error(exc, event_id=event_id) from exc

        stored, event = self._register_attendance(event_id, registration.model_dump())
        logger.info("event_registration_created", event_id=event_id, registration_id=registration.id)
        return EventRegistration.model_validate(stored), self.to_model(event)

    def list_registrations(
        self,
        event_id: str,
        status: RegistrationStatus | None = RegistrationStatus.CONFIRMED,
    ) -> list[EventRegistration]:
        filters = [Filter("event_id", "eq", event_id)]
        if status is not None:
            filters.append(Filter("status", "eq", status.value))
        return [EventRegistration.model_validate(r) for r in self._registration_rows(filters)]

    def get_registration(self, registration_id: str) -> EventRegistration:
        rows = self._registration_rows([Filter("id", "eq", registration_id)])
        if not rows:
            raise NotFoundError(
                ErrorCode.REGISTRATION_NOT_FOUND.value,
                "registration not found",
                {"registration_id": registration_id},
            )
        return EventRegistration.model_validate(rows[0])

    def cancel_registration(self, registration_id: str) -> EventRegistration:
        """Mark a registration cancelled.

        The event's attendee counter is left as is.
        """
        current = self.get_registration(registration_id)
        if current.status == RegistrationStatus.CANCELLED:
            return current
        patch = {
            "status": RegistrationStatus.CANCELLED.value,
            "updated_at": touch(current.updated_at),
            "version": current.version + 1,
        }
        stored = self._patch_registration(registration_id, patch, current.version)
        if stored is None:
            raise NotFoundError(
                ErrorCode.REGISTRATION_NOT_FOUND.value,
                "registration not found",
                {"registration_id": registration_id},
            )
        logger.info("event_registration_cancelled", registration_id=registration_id)
        return EventRegistration.model_validate(stored)


class RemoteEventRepository(EventOperations, RemoteRepository[Event]):
    def __init__(self, client: DataClient) -> None:
        super().__init__(EVENTS, client)

    def _register_attendance(self, event_id: str, row: dict[str, Any]) -> tuple[dict, dict]:
        return self.client.register_attendance(event_id, row)

    def _registration_rows(self, filters: list[Filter]) -> list[dict[str, Any]]:
        return self.client.query(REGISTRATIONS_TABLE, filters, order_by="created_at")

    def _patch_registration(self, id: str, patch: dict[str, Any], expected_version: int) -> dict | None:
        return self.client.update(REGISTRATIONS_TABLE, id, patch, expected_version=expected_version)


class LocalEventRepository(EventOperations, LocalRepository[Event]):
    def __init__(self, store: KeyValueStore, feed: ChangeFeed | None = None) -> None:
        super().__init__(EVENTS, store, feed)
        self.registrations = JsonCollection(store, REGISTRATIONS_KEY)

    def _register_attendance(self, event_id: str, row: dict[str, Any]) -> tuple[dict, dict]:
        self._ensure_seeded()
        stored = EventRegistration.model_validate(row).model_dump(mode="json")
        with self.document.edit() as events:
            index = next((i for i, e in enumerate(events) if e.get("id") == event_id), None)
            if index is None:
                raise _event_not_found(event_id)
            old = events[index]
            event = self.to_model(old)
            if event.max_attendees is not None and event.current_attendees + row["guests"] > event.max_attendees:
                raise ConflictError(
                    ErrorCode.EVENT_FULL.value,
                    "not enough spots left for this registration",
                    {
                        "event_id": event_id,
                        "available": event.available_spots,
                        "requested": row["guests"],
                    },
                )
            updated = event.model_copy(
                update={
                    "current_attendees": event.current_attendees + row["guests"],
                    "version": event.version + 1,
                    "updated_at": touch(event.updated_at),
                }
            ).model_dump(mode="json")
            with self.registrations.edit() as registrations:
                registrations.append(stored)
            events[index] = updated

        self.feed.publish(ChangePayload(REGISTRATIONS_TABLE, ChangeType.INSERT, new=stored))
        self.feed.publish(ChangePayload(self.collection.table, ChangeType.UPDATE, new=updated, old=old))
        return stored, updated

    def _registration_rows(self, filters: list[Filter]) -> list[dict[str, Any]]:
        rows = [r for r in self.registrations.read() if all(f.matches(r) for f in filters)]
        return sorted(rows, key=lambda r: r.get("created_at") or "")

    def _patch_registration(self, id: str, patch: dict[str, Any], expected_version: int) -> dict | None:
        with self.registrations.edit() as registrations:
            for index, row in enumerate(registrations):
                if row.get("id") != id:
                    continue
                if row.get("version", 1) != expected_version:
                    raise self._stale(id, expected_version)
                stored = EventRegistration.model_validate({**row, **patch}).model_dump(mode="json")
                registrations[index] = stored
                break
            else:
                return None
        self.feed.publish(ChangePayload(REGISTRATIONS_TABLE, ChangeType.UPDATE, new=stored, old=row))
        return stored
