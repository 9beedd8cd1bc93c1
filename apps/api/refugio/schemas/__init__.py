from refugio.schemas.content import BlogPost, Category, Ministry, Sermon
from refugio.schemas.events import (
    Event,
    EventRegistration,
    EventType,
    RegistrationForm,
    RegistrationStatus,
)
from refugio.schemas.interactions import Comment, Like, Namespace
from refugio.schemas.profiles import Profile, UserRole

__all__ = [
    "Event",
    "EventType",
    "EventRegistration",
    "RegistrationForm",
    "RegistrationStatus",
    "Sermon",
    "BlogPost",
    "Ministry",
    "Category",
    "Like",
    "Comment",
    "Namespace",
    "Profile",
    "UserRole",
]
