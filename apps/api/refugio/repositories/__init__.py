from refugio.repositories.base import EntityRepository
from refugio.repositories.events import (
    EventOperations,
    LocalEventRepository,
    RemoteEventRepository,
)
from refugio.repositories.factory import RepositoryRegistry, create_repository
from refugio.repositories.local import LocalRepository
from refugio.repositories.remote import RemoteRepository

__all__ = [
    "EntityRepository",
    "EventOperations",
    "LocalEventRepository",
    "LocalRepository",
    "RemoteEventRepository",
    "RemoteRepository",
    "RepositoryRegistry",
    "create_repository",
]
