from refugio.api.v1.schemas.content import (
    BlogPostCreate,
    BlogPostUpdate,
    CategoryCreate,
    CategoryUpdate,
    MinistryCreate,
    MinistryUpdate,
    SermonCreate,
    SermonUpdate,
)
from refugio.api.v1.schemas.events import EventCreate, EventOut, EventUpdate, RsvpOut
from refugio.api.v1.schemas.interactions import CommentIn, InteractionSummary, LikeOut

__all__ = [
    "EventCreate",
    "EventUpdate",
    "EventOut",
    "RsvpOut",
    "SermonCreate",
    "SermonUpdate",
    "BlogPostCreate",
    "BlogPostUpdate",
    "MinistryCreate",
    "MinistryUpdate",
    "CategoryCreate",
    "CategoryUpdate",
    "CommentIn",
    "LikeOut",
    "InteractionSummary",
]
