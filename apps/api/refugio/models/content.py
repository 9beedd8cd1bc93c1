from __future__ import annotations

from datetime import date, datetime

import sqlalchemy as sa
from sqlalchemy import Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from refugio.models.base import (
    Base,
    PublishableMixin,
    SlugMixin,
    TimestampMixin,
    UTCDateTime,
    UUIDPrimaryKeyMixin,
    VersionedMixin,
)


class CategoryColumns(UUIDPrimaryKeyMixin, TimestampMixin, VersionedMixin, SlugMixin):
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)


class EventCategory(Base, CategoryColumns):
    __tablename__ = "event_categories"


class SermonCategory(Base, CategoryColumns):
    __tablename__ = "sermon_categories"


class BlogCategory(Base, CategoryColumns):
    __tablename__ = "blog_categories"


class CounterColumns:
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    like_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Sermon(
    Base, UUIDPrimaryKeyMixin, TimestampMixin, VersionedMixin, SlugMixin, PublishableMixin, CounterColumns
):
    __tablename__ = "sermons"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    speaker: Mapped[str] = mapped_column(String(200), nullable=False)
    sermon_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    audio_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    video_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    transcript: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    scripture_reference: Mapped[str | None] = mapped_column(String(200), nullable=True)
    series: Mapped[str | None] = mapped_column(String(200), nullable=True)
    category_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("sermon_categories.id", ondelete="SET NULL"), nullable=True
    )
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)


class BlogPost(
    Base, UUIDPrimaryKeyMixin, TimestampMixin, VersionedMixin, SlugMixin, PublishableMixin, CounterColumns
):
    __tablename__ = "blog_posts"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("blog_categories.id", ondelete="SET NULL"), nullable=True
    )
    author_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    published_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    seo_title: Mapped[str | None] = mapped_column(String(70), nullable=True)
    seo_description: Mapped[str | None] = mapped_column(String(160), nullable=True)


class Ministry(Base, UUIDPrimaryKeyMixin, TimestampMixin, VersionedMixin, SlugMixin):
    __tablename__ = "ministries"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    leader_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    leader_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    target_age_group: Mapped[str | None] = mapped_column(String(50), nullable=True)
    meeting_day: Mapped[str | None] = mapped_column(String(20), nullable=True)
    meeting_time: Mapped[str | None] = mapped_column(String(20), nullable=True)
    meeting_location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
