from refugio.stores.base import EntityStore, OperationResult
from refugio.stores.content import BlogPostStore, CategoryStore, MinistryStore, SermonStore
from refugio.stores.events import EventStore

__all__ = [
    "EntityStore",
    "OperationResult",
    "EventStore",
    "SermonStore",
    "BlogPostStore",
    "MinistryStore",
    "CategoryStore",
]
