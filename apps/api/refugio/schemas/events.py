from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum

from pydantic import EmailStr, Field, model_validator

from refugio.schemas.base import Record, SchemaBase, SluggedRecord, TaggedMixin


class EventType(str, Enum):
    SERVICE = "service"
    STUDY = "study"
    CONFERENCE = "conference"
    WORKSHOP = "workshop"
    YOUTH = "youth"
    PRAYER = "prayer"
    SOCIAL = "social"
    OTHER = "other"


class RegistrationStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Event(TaggedMixin, SluggedRecord):
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    detailed_description: str | None = None
    event_date: date
    start_time: time | None = None
    end_time: time | None = None
    location_name: str | None = None
    location_address: str | None = None
    category_id: str | None = None
    type: EventType = EventType.OTHER
    max_attendees: int | None = Field(default=None, ge=1)
    current_attendees: int = Field(default=0, ge=0)
    requires_rsvp: bool = False
    cost: float = Field(default=0, ge=0)
    host_name: str | None = None
    image_url: str | None = None
    is_published: bool = False
    is_featured: bool = False
    created_by: str | None = None

    @model_validator(mode="after")
    def _validate_times(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def available_spots(self) -> int | None:
        if self.max_attendees is None:
            return None
        return max(0, self.max_attendees - self.current_attendees)

    @property
    def is_full(self) -> bool:
        spots = self.available_spots
        return spots is not None and spots <= 0

    @property
    def over_capacity(self) -> bool:
        # Soft invariant: surfaced as a warning, never enforced on reads.
        return self.max_attendees is not None and self.current_attendees > self.max_attendees

    def calendar_entry(self) -> dict:
        """Plain data handed to calendar/share collaborators."""
        start = datetime.combine(self.event_date, self.start_time or time(0, 0))
        end = datetime.combine(self.event_date, self.end_time) if self.end_time else None
        location = ", ".join(p for p in (self.location_name, self.location_address) if p)
        return {
            "title": self.title,
            "description": self.description,
            "startDate": start,
            "endDate": end,
            "location": location,
        }


class EventRegistration(Record):
    event_id: str
    user_id: str | None = None
    name: str
    email: EmailStr
    phone: str | None = None
    guests: int = Field(default=1, ge=1)
    special_requests: str | None = None
    status: RegistrationStatus = RegistrationStatus.CONFIRMED


class RegistrationForm(SchemaBase):
    name: str = ""
    email: str = ""
    phone: str = ""
    guests: int = 1
    special_requests: str = ""
