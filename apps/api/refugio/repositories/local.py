from __future__ import annotations

from typing import Any, Sequence

import structlog

from refugio.collections import Collection, Filter
from refugio.data.base import ChangeFeed, ChangePayload, ChangeType
from refugio.repositories.base import EntityRepository, T
from refugio.storage.base import KeyValueStore
from refugio.storage.collection import JsonCollection

logger = structlog.get_logger(__name__)


def _dump(model) -> dict[str, Any]:
    return model.model_dump(mode="json")


class LocalRepository(EntityRepository[T]):
    """Rows live in one JSON document per collection in the local store.

    Filtering happens after the whole document is read. Collections that
    declare seed rows get them on first use.
    """

    def __init__(
        self,
        collection: Collection,
        store: KeyValueStore,
        feed: ChangeFeed | None = None,
    ) -> None:
        super().__init__(collection)
        self.store = store
        self.feed = feed or ChangeFeed()
        self.document = JsonCollection(store, collection.storage_key)
        self._seeded = False

    def _ensure_seeded(self) -> None:
        if self._seeded:
            return
        self._seeded = True
        if self.collection.seeds is None or self.document.exists():
            return
        for data in self.collection.seeds():
            self.create(data)
        logger.info("local_collection_seeded", collection=self.collection.name)

    def _rows(self) -> list[dict[str, Any]]:
        self._ensure_seeded()
        return list(self.document.read())

    def _select(self, filters: Sequence[Filter], limit: int | None, offset: int = 0) -> list[T]:
        models = [self.to_model(row) for row in self._rows()]
        matched = [m for m in models if all(f.matches(m) for f in filters)]
        ordered = self.collection.sort(matched)
        return ordered[offset : offset + limit] if limit else ordered[offset:]

    def _insert(self, row: dict[str, Any]) -> dict[str, Any]:
        stored = _dump(self.model.model_validate(row))
        with self.document.edit() as rows:
            rows.append(stored)
        self._publish(ChangeType.INSERT, new=stored)
        return stored

    def _patch(self, id: str, patch: dict[str, Any], expected_version: int) -> dict[str, Any] | None:
        with self.document.edit() as rows:
            for index, row in enumerate(rows):
                if row.get("id") != id:
                    continue
                if row.get("version", 1) != expected_version:
                    raise self._stale(id, expected_version)
                stored = _dump(self.model.model_validate({**row, **patch}))
                rows[index] = stored
                break
            else:
                return None
        self._publish(ChangeType.UPDATE, new=stored, old=row)
        return stored

    def _remove(self, id: str) -> None:
        with self.document.edit() as rows:
            removed = [row for row in rows if row.get("id") == id]
            rows[:] = [row for row in rows if row.get("id") != id]
        for old in removed:
            self._publish(ChangeType.DELETE, old=old)

    def _publish(self, event_type: ChangeType, new=None, old=None) -> None:
        self.feed.publish(
            ChangePayload(self.collection.table, event_type, new=new or {}, old=old or {})
        )
