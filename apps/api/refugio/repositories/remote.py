from __future__ import annotations

from typing import Any, Sequence

from refugio.collections import Collection, Filter
from refugio.data.base import DataClient
from refugio.repositories.base import EntityRepository, T


class RemoteRepository(EntityRepository[T]):
    """Rows live in the hosted tables; filters run server-side."""

    def __init__(self, collection: Collection, client: DataClient) -> None:
        super().__init__(collection)
        self.client = client

    def _select(self, filters: Sequence[Filter], limit: int | None, offset: int = 0) -> list[T]:
        rows = self.client.query(
            self.collection.table,
            filters,
            order_by=self.collection.order_by,
            descending=self.collection.descending,
            limit=limit,
            offset=offset,
        )
        return [self.to_model(row) for row in rows]

    def _insert(self, row: dict[str, Any]) -> dict[str, Any]:
        return self.client.insert(self.collection.table, row)

    def _patch(self, id: str, patch: dict[str, Any], expected_version: int) -> dict[str, Any] | None:
        return self.client.update(self.collection.table, id, patch, expected_version=expected_version)

    def _remove(self, id: str) -> None:
        self.client.delete(self.collection.table, id)
