from __future__ import annotations

from pydantic import Field

from refugio.schemas import Comment
from refugio.schemas.base import SchemaBase


class CommentIn(SchemaBase):
    content: str = Field(min_length=1, max_length=5000)


class LikeOut(SchemaBase):
    liked: bool
    likes: int


class InteractionSummary(SchemaBase):
    entity_id: str
    likes: int
    comments_count: int
    liked: bool
    comments: list[Comment]
