from __future__ import annotations

from datetime import date, time

from refugio.repositories.events import EventOperations
from refugio.schemas import Event, EventRegistration, RegistrationForm
from refugio.stores.base import EntityStore, OperationResult


class EventStore(EntityStore[Event]):
    repository: EventOperations

    def register(
        self,
        event_id: str,
        form: RegistrationForm,
        identity=None,
    ) -> OperationResult[tuple[EventRegistration, Event]]:
        def commit(result: tuple[EventRegistration, Event]) -> None:
            self._replace(result[1])

        return self._run(
            "register",
            lambda: self.repository.register(event_id, form, identity),
            commit,
            event_id=event_id,
        )

    def registrations(self, event_id: str) -> OperationResult[list[EventRegistration]]:
        return self._run(
            "registrations",
            lambda: self.repository.list_registrations(event_id),
            track_error=False,
            event_id=event_id,
        )

    def cancel_registration(self, registration_id: str) -> OperationResult[EventRegistration]:
        return self._run(
            "cancel_registration",
            lambda: self.repository.cancel_registration(registration_id),
            registration_id=registration_id,
        )

    def upcoming(self, today: date | None = None, limit: int | None = None) -> list[Event]:
        today = today or date.today()
        events = sorted(
            (e for e in self._items if e.event_date >= today),
            key=lambda e: (e.event_date, e.start_time or time.min),
        )
        return events[:limit] if limit else events
