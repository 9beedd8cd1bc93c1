from __future__ import annotations

from redis import Redis

from refugio.storage.base import KeyValueStore


class RedisKeyValueStore(KeyValueStore):
    def __init__(self, client: Redis, prefix: str = "refugio:") -> None:
        self._client = client
        self._prefix = prefix

    def _redis_key(self, key: str) -> str:
        return f"{self._prefix}{self.normalize_key(key)}"

    def get(self, key: str) -> str | None:
        return self._client.get(self._redis_key(key))

    def set(self, key: str, value: str) -> None:
        self._client.set(self._redis_key(key), value)

    def delete(self, key: str) -> None:
        self._client.delete(self._redis_key(key))
