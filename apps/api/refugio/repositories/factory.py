from __future__ import annotations

from refugio.collections import EVENTS, get_collection
from refugio.core.config import settings
from refugio.data.base import ChangeFeed, DataClient
from refugio.interactions.backends import (
    InteractionBackend,
    LocalInteractionBackend,
    RemoteInteractionBackend,
)
from refugio.repositories.base import EntityRepository
from refugio.repositories.events import (
    EventOperations,
    LocalEventRepository,
    RemoteEventRepository,
)
from refugio.repositories.local import LocalRepository
from refugio.repositories.remote import RemoteRepository
from refugio.storage.base import KeyValueStore


def create_repository(
    name: str,
    backend: str | None = None,
    client: DataClient | None = None,
    store: KeyValueStore | None = None,
    feed: ChangeFeed | None = None,
) -> EntityRepository:
    """Build the repository for a collection.

    ``backend`` is ``local`` for the fallback store; anything else uses the
    remote data client. The choice is made here once and never mixed.
    """
    collection = get_collection(name)
    selected_backend = (backend or settings.data_backend).strip().lower()

    if selected_backend == "local":
        if store is None:
            from refugio.storage.factory import get_store

            store = get_store()
        if collection is EVENTS:
            return LocalEventRepository(store, feed)
        return LocalRepository(collection, store, feed)

    if client is None:
        from refugio.data.factory import create_data_client, get_data_client

        if selected_backend == settings.data_backend:
            client = get_data_client()
        else:
            client = create_data_client(selected_backend)
    if collection is EVENTS:
        return RemoteEventRepository(client)
    return RemoteRepository(collection, client)


class RepositoryRegistry:
    """One repository per collection, all on the same backing."""

    def __init__(
        self,
        backend: str | None = None,
        client: DataClient | None = None,
        store: KeyValueStore | None = None,
    ) -> None:
        self.backend = (backend or settings.data_backend).strip().lower()
        if self.backend == "local":
            if store is None:
                from refugio.storage.factory import get_store

                store = get_store()
            self.feed = ChangeFeed()
        else:
            if client is None:
                from refugio.data.factory import get_data_client

                client = get_data_client()
            self.feed = client.feed
        self.client = client
        self.store = store
        self._repositories: dict[str, EntityRepository] = {}

    def get(self, name: str) -> EntityRepository:
        if name not in self._repositories:
            self._repositories[name] = create_repository(
                name, self.backend, client=self.client, store=self.store, feed=self.feed
            )
        return self._repositories[name]

    @property
    def events(self) -> EventOperations:
        return self.get("events")  # type: ignore[return-value]

    def interaction_backend(self) -> InteractionBackend:
        if self.backend == "local":
            return LocalInteractionBackend(self.store)
        return RemoteInteractionBackend(self.client)
