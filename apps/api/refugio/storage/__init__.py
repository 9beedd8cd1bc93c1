from __future__ import annotations

from refugio.storage.base import KeyValueStore
from refugio.storage.collection import JsonCollection
from refugio.storage.file import FileKeyValueStore


def create_store(*args, **kwargs):
    from refugio.storage.factory import create_store as _create_store

    return _create_store(*args, **kwargs)


def get_store():
    from refugio.storage.factory import get_store as _get_store

    return _get_store()


__all__ = ["KeyValueStore", "FileKeyValueStore", "JsonCollection", "create_store", "get_store"]
