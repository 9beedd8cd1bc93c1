from __future__ import annotations

from datetime import date, time

import sqlalchemy as sa
from sqlalchemy import Date, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column

from refugio.models.base import (
    Base,
    PublishableMixin,
    SlugMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    VersionedMixin,
)


class Event(Base, UUIDPrimaryKeyMixin, TimestampMixin, VersionedMixin, SlugMixin, PublishableMixin):
    __tablename__ = "events"
    __table_args__ = (
        sa.CheckConstraint("current_attendees >= 0", name="ck_events_current_attendees"),
        sa.Index("ix_events_event_date", "event_date"),
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    detailed_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    event_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    location_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    location_address: Mapped[str | None] = mapped_column(String(300), nullable=True)
    category_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("event_categories.id", ondelete="SET NULL"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(30), nullable=False, default="other")
    max_attendees: Mapped[int | None] = mapped_column(Integer, nullable=True)
    current_attendees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    requires_rsvp: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    cost: Mapped[float] = mapped_column(sa.Float, nullable=False, default=0)
    host_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)


class EventRegistration(Base, UUIDPrimaryKeyMixin, TimestampMixin, VersionedMixin):
    __tablename__ = "event_registrations"

    event_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    guests: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    special_requests: Mapped[str | None] = mapped_column(Text, nullable=True)
    # confirmed/cancelled
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="confirmed")
