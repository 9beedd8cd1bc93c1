from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Iterable

from refugio.schemas import Event, EventRegistration, RegistrationStatus


@dataclass(frozen=True)
class EventStats:
    total: int
    published: int
    upcoming: int
    featured: int
    this_month: int
    total_registrations: int
    average_attendance: int

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def event_stats(
    events: Iterable[Event],
    registrations: Iterable[EventRegistration] = (),
    today: date | None = None,
) -> EventStats:
    today = today or date.today()
    events = list(events)
    confirmed = [r for r in registrations if r.status == RegistrationStatus.CONFIRMED]

    attended = [e.current_attendees for e in events if e.current_attendees > 0]
    average = round(sum(attended) / len(attended)) if attended else 0

    return EventStats(
        total=len(events),
        published=sum(1 for e in events if e.is_published),
        upcoming=sum(1 for e in events if e.event_date >= today),
        featured=sum(1 for e in events if e.is_featured),
        this_month=sum(
            1 for e in events if e.event_date.year == today.year and e.event_date.month == today.month
        ),
        total_registrations=len(confirmed),
        average_attendance=average,
    )
