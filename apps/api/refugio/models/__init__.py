from refugio.models.base import Base
from refugio.models.content import (
    BlogCategory,
    BlogPost,
    EventCategory,
    Ministry,
    Sermon,
    SermonCategory,
)
from refugio.models.event import Event, EventRegistration
from refugio.models.interaction import BlogInteraction, EventInteraction, SermonInteraction
from refugio.models.profile import Profile

__all__ = [
    "Base",
    "Event",
    "EventRegistration",
    "EventCategory",
    "Sermon",
    "SermonCategory",
    "BlogPost",
    "BlogCategory",
    "Ministry",
    "Profile",
    "EventInteraction",
    "BlogInteraction",
    "SermonInteraction",
]
