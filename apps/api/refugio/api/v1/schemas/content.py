from __future__ import annotations

from datetime import date, datetime

from pydantic import Field

from refugio.schemas.base import SchemaBase


class SermonCreate(SchemaBase):
    title: str = Field(min_length=1, max_length=200)
    slug: str | None = None
    description: str = ""
    speaker: str = Field(min_length=1)
    sermon_date: date
    audio_url: str | None = None
    video_url: str | None = None
    transcript: str | None = None
    duration: int | None = Field(default=None, ge=0)
    scripture_reference: str | None = None
    series: str | None = None
    category_id: str | None = None
    is_published: bool = False
    is_featured: bool = False
    tags: list[str] = Field(default_factory=list)


class SermonUpdate(SchemaBase):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    slug: str | None = None
    description: str | None = None
    speaker: str | None = Field(default=None, min_length=1)
    sermon_date: date | None = None
    audio_url: str | None = None
    video_url: str | None = None
    transcript: str | None = None
    duration: int | None = Field(default=None, ge=0)
    scripture_reference: str | None = None
    series: str | None = None
    category_id: str | None = None
    is_published: bool | None = None
    is_featured: bool | None = None
    tags: list[str] | None = None


class BlogPostCreate(SchemaBase):
    title: str = Field(min_length=1, max_length=200)
    slug: str | None = None
    content: str = ""
    excerpt: str | None = None
    category_id: str | None = None
    author_id: str | None = None
    is_published: bool = False
    is_featured: bool = False
    published_at: datetime | None = None
    seo_title: str | None = Field(default=None, max_length=70)
    seo_description: str | None = Field(default=None, max_length=160)
    tags: list[str] = Field(default_factory=list)


class BlogPostUpdate(SchemaBase):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    slug: str | None = None
    content: str | None = None
    excerpt: str | None = None
    category_id: str | None = None
    author_id: str | None = None
    is_published: bool | None = None
    is_featured: bool | None = None
    published_at: datetime | None = None
    seo_title: str | None = Field(default=None, max_length=70)
    seo_description: str | None = Field(default=None, max_length=160)
    tags: list[str] | None = None


class MinistryCreate(SchemaBase):
    name: str = Field(min_length=1, max_length=200)
    slug: str | None = None
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


class MinistryUpdate(SchemaBase):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    slug: str | None = None
    description: str | None = None
    leader_id: str | None = None
    leader_name: str | None = None
    target_age_group: str | None = None
    meeting_day: str | None = None
    meeting_time: str | None = None
    meeting_location: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    is_active: bool | None = None
    display_order: int | None = None


class CategoryCreate(SchemaBase):
    name: str = Field(min_length=1, max_length=100)
    slug: str | None = None
    description: str | None = None
    color: str | None = None
    display_order: int = 0
    is_active: bool = True


class CategoryUpdate(SchemaBase):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    slug: str | None = None
    description: str | None = None
    color: str | None = None
    display_order: int | None = None
    is_active: bool | None = None
