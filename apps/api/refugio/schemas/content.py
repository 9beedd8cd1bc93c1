from __future__ import annotations

from datetime import date, datetime

from pydantic import Field

from refugio.schemas.base import SluggedRecord, TaggedMixin


class Sermon(TaggedMixin, SluggedRecord):
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    speaker: str = Field(min_length=1)
    sermon_date: date
    audio_url: str | None = None
    video_url: str | None = None
    transcript: str | None = None
    duration: int | None = Field(default=None, ge=0, description="minutes")
    scripture_reference: str | None = None
    series: str | None = None
    category_id: str | None = None
    view_count: int = Field(default=0, ge=0)
    like_count: int = Field(default=0, ge=0)
    comment_count: int = Field(default=0, ge=0)
    is_published: bool = False
    is_featured: bool = False
    created_by: str | None = None


class BlogPost(TaggedMixin, SluggedRecord):
    title: str = Field(min_length=1, max_length=200)
    content: str = ""
    excerpt: str | None = None
    category_id: str | None = None
    author_id: str | None = None
    is_published: bool = False
    is_featured: bool = False
    published_at: datetime | None = None
    view_count: int = Field(default=0, ge=0)
    like_count: int = Field(default=0, ge=0)
    comment_count: int = Field(default=0, ge=0)
    seo_title: str | None = Field(default=None, max_length=70)
    seo_description: str | None = Field(default=None, max_length=160)


class Ministry(SluggedRecord):
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    leader_id: str | None = None
    leader_name: str | None = None
    target_age_group: str | None = None
    meeting_day: str | None = None
    meeting_time: str | None = None
    meeting_location: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    is_active: bool = True
    display_order: int = 0


class Category(SluggedRecord):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    color: str | None = None
    display_order: int = 0
    is_active: bool = True
