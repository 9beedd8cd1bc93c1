from __future__ import annotations

import pytest

from refugio.services.exceptions import DatabaseError
from refugio.storage import FileKeyValueStore, JsonCollection
from refugio.storage.factory import create_store


def test_file_store_roundtrip(kv_store: FileKeyValueStore):
    assert kv_store.get("refugio_events") is None

    kv_store.set("refugio_events", "[]")
    kv_store.set("refugio_events", '[{"id": "1"}]')

    assert kv_store.get("refugio_events") == '[{"id": "1"}]'
    kv_store.delete("refugio_events")
    kv_store.delete("refugio_events")
    assert kv_store.get("refugio_events") is None


@pytest.mark.parametrize("key", ["", ".", "..", "a/b", "../escape"])
def test_keys_must_be_plain_names(kv_store: FileKeyValueStore, key):
    with pytest.raises(ValueError):
        kv_store.set(key, "x")


def test_json_collection_edit(kv_store: FileKeyValueStore):
    doc = JsonCollection(kv_store, "event_likes", default_factory=dict)
    assert doc.exists() is False
    assert doc.read() == {}

    with doc.edit() as likes:
        likes["e1"] = [{"id": "l1"}]

    assert doc.exists()
    assert JsonCollection(kv_store, "event_likes").read() == {"e1": [{"id": "l1"}]}


def test_failed_edit_writes_nothing(kv_store: FileKeyValueStore):
    doc = JsonCollection(kv_store, "refugio_sermons")
    doc.write([{"id": "s1"}])

    with pytest.raises(RuntimeError):
        with doc.edit() as rows:
            rows.clear()
            raise RuntimeError("abort")

    assert doc.read() == [{"id": "s1"}]


def test_corrupt_document(kv_store: FileKeyValueStore):
    kv_store.set("refugio_sermons", "{oops")

    with pytest.raises(DatabaseError):
        JsonCollection(kv_store, "refugio_sermons").read()


def test_create_store(tmp_path):
    store = create_store("file", root=tmp_path / "data")

    assert isinstance(store, FileKeyValueStore)
    with pytest.raises(ValueError):
        create_store("memcached")


class DictRedis:
    """Just the string commands RedisKeyValueStore uses."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


def test_redis_store_prefixes_keys():
    from refugio.storage.redis import RedisKeyValueStore

    backend = DictRedis()
    store = RedisKeyValueStore(backend)

    store.set("refugio_events", "[]")

    assert backend.data == {"refugio:refugio_events": "[]"}
    assert store.get("refugio_events") == "[]"
    store.delete("refugio_events")
    assert store.get("refugio_events") is None
