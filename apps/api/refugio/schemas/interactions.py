from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import Field, field_validator

from refugio.schemas.base import SchemaBase, ensure_utc


class Namespace(str, Enum):
    EVENT = "event"
    BLOG_POST = "blog_post"
    SERMON = "sermon"

    @property
    def requires_moderation(self) -> bool:
        return self is Namespace.BLOG_POST


class InteractionBase(SchemaBase):
    id: str
    entity_id: str
    user_id: str | None = None
    user_email: str | None = None
    user_name: str | None = None
    created_at: datetime

    @field_validator("created_at", "updated_at", mode="after", check_fields=False)
    @classmethod
    def _validate_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)


class Like(InteractionBase):
    pass


class Comment(InteractionBase):
    content: str = Field(min_length=1)
    is_approved: bool = True
    updated_at: datetime
