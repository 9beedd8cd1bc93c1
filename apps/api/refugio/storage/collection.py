from __future__ import annotations

import json
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from refugio.services.error_codes import ErrorCode
from refugio.services.exceptions import DatabaseError
from refugio.storage.base import KeyValueStore

_locks: dict[tuple[int, str], threading.RLock] = {}
_locks_guard = threading.Lock()


def _lock_for(store: KeyValueStore, key: str) -> threading.RLock:
    with _locks_guard:
        return _locks.setdefault((id(store), key), threading.RLock())


class JsonCollection:
    """A whole JSON document kept under one store key.

    Every write replaces the full document.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        default_factory: Callable[[], Any] = list,
    ) -> None:
        self._store = store
        self.key = store.normalize_key(key)
        self._default_factory = default_factory
        self._lock = _lock_for(store, self.key)

    def exists(self) -> bool:
        return self._store.get(self.key) is not None

    def read(self) -> Any:
        raw = self._store.get(self.key)
        if raw is None:
            return self._default_factory()
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise DatabaseError(
                ErrorCode.DATABASE_ERROR.value,
                f"local document {self.key} is corrupt",
                {"key": self.key},
            ) from exc

    def write(self, document: Any) -> None:
        self._store.set(self.key, json.dumps(document, ensure_ascii=False))

    @contextmanager
    def edit(self) -> Iterator[Any]:
        """Read, let the caller mutate, then write the document back."""
        with self._lock:
            document = self.read()
            yield document
            self.write(document)

    def clear(self) -> None:
        with self._lock:
            self._store.delete(self.key)
