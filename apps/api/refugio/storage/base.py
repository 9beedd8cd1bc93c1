from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import PurePosixPath


class KeyValueStore(ABC):
    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value stored under key, or None."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete key if it exists."""

    @staticmethod
    def normalize_key(key: str) -> str:
        normalized = key.strip()
        path_key = PurePosixPath(normalized)
        if (
            not normalized
            or path_key.is_absolute()
            or len(path_key.parts) != 1
            or normalized in {".", ".."}
        ):
            raise ValueError(f"invalid storage key: {key!r}")
        return normalized
