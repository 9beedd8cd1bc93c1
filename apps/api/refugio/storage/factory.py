from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from refugio.core.config import settings
from refugio.storage.base import KeyValueStore
from refugio.storage.file import FileKeyValueStore


def create_store(
    backend: str | None = None,
    root: str | Path | None = None,
) -> KeyValueStore:
    selected_backend = (backend or settings.local_store_backend).strip().lower()
    if selected_backend == "file":
        return FileKeyValueStore(Path(root or settings.local_store_root))
    if selected_backend == "redis":
        from refugio.redis_client import get_redis
        from refugio.storage.redis import RedisKeyValueStore

        return RedisKeyValueStore(get_redis())
    raise ValueError(f"unsupported local store backend: {selected_backend}")


@lru_cache(maxsize=1)
def get_store() -> KeyValueStore:
    return create_store()
