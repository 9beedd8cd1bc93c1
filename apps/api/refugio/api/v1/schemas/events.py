from __future__ import annotations

from datetime import date, time

from pydantic import Field, computed_field

from refugio.schemas import Event, EventRegistration, EventType
from refugio.schemas.base import SchemaBase


class EventCreate(SchemaBase):
    title: str = Field(min_length=1, max_length=200)
    slug: str | None = None
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
    requires_rsvp: bool = False
    cost: float = Field(default=0, ge=0)
    host_name: str | None = None
    image_url: str | None = None
    is_published: bool = False
    is_featured: bool = False
    tags: list[str] = Field(default_factory=list)


class EventUpdate(SchemaBase):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    slug: str | None = None
    description: str | None = None
    detailed_description: str | None = None
    event_date: date | None = None
    start_time: time | None = None
    end_time: time | None = None
    location_name: str | None = None
    location_address: str | None = None
    category_id: str | None = None
    type: EventType | None = None
    max_attendees: int | None = Field(default=None, ge=1)
    requires_rsvp: bool | None = None
    cost: float | None = Field(default=None, ge=0)
    host_name: str | None = None
    image_url: str | None = None
    is_published: bool | None = None
    is_featured: bool | None = None
    tags: list[str] | None = None


class EventOut(Event):
    @computed_field
    @property
    def spots_left(self) -> int | None:
        return self.available_spots

    @computed_field
    @property
    def full(self) -> bool:
        return self.is_full


class RsvpOut(SchemaBase):
    registration: EventRegistration
    event: EventOut
