from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Generic, Mapping, Sequence, TypeVar

import pydantic
import structlog

from refugio.collections import Collection, Filter, QueryOptions
from refugio.core.clock import touch, utcnow
from refugio.core.slugs import slugify
from refugio.schemas.base import Record
from refugio.services.error_codes import ErrorCode
from refugio.services.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from refugio.auth.identity import Identity

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=Record)

# Assigned by the repository, never taken from callers.
SERVER_FIELDS = frozenset({"id", "created_at", "updated_at", "version"})


def validation_error(exc: pydantic.ValidationError, **context: Any) -> ValidationError:
    fields = {
        ".".join(str(p) for p in err["loc"]) or "__root__": err["msg"] for err in exc.errors()
    }
    return ValidationError(
        ErrorCode.VALIDATION_FAILED.value,
        "; ".join(f"{k}: {v}" for k, v in fields.items()),
        {**context, "fields": fields},
    )


class EntityRepository(ABC, Generic[T]):
    """CRUD over one collection.

    Subclasses supply the row primitives; the merge rules for create and
    update live here so both backings behave the same.
    """

    def __init__(self, collection: Collection) -> None:
        self.collection = collection

    @property
    def model(self) -> type[T]:
        return self.collection.model  # type: ignore[return-value]

    # Row primitives

    @abstractmethod
    def _select(self, filters: Sequence[Filter], limit: int | None, offset: int = 0) -> list[T]:
        """Return validated rows matching filters in collection order."""

    @abstractmethod
    def _insert(self, row: dict[str, Any]) -> dict[str, Any]:
        """Persist a new row and return it as stored."""

    @abstractmethod
    def _patch(self, id: str, patch: dict[str, Any], expected_version: int) -> dict[str, Any] | None:
        """Apply patch if the stored version still matches; None when gone."""

    @abstractmethod
    def _remove(self, id: str) -> None:
        """Delete the row if present."""

    # Public operations

    def to_model(self, row: Mapping[str, Any]) -> T:
        try:
            return self.model.model_validate(row)
        except pydantic.ValidationError as exc:
            raise DatabaseError(
                ErrorCode.DATABASE_ERROR.value,
                f"stored {self.collection.name} row is invalid",
                {"collection": self.collection.name, "id": row.get("id")},
            ) from exc

    def list(self, options: QueryOptions | None = None) -> list[T]:
        filters = self.collection.filters_for(options)
        if options is None:
            return self._select(filters, None)
        return self._select(filters, options.limit, options.offset or 0)

    def get(self, id: str) -> T | None:
        return self.find_one("id", id)

    def get_by_slug(self, slug: str) -> T | None:
        if "slug" not in self.model.model_fields:
            return None
        return self.find_one("slug", slug)

    def find_one(self, column: str, value: Any) -> T | None:
        rows = self._select([Filter(column, "eq", value)], 1)
        return rows[0] if rows else None

    def require(self, id: str) -> T:
        found = self.get(id)
        if found is None:
            raise NotFoundError(
                ErrorCode.ENTITY_NOT_FOUND.value,
                f"{self.collection.name} {id} not found",
                {"collection": self.collection.name, "id": id},
            )
        return found

    def create(self, data: Mapping[str, Any], identity: "Identity | None" = None) -> T:
        fields = self.model.model_fields
        now = utcnow()
        row = {k: v for k, v in data.items() if k not in SERVER_FIELDS}
        row.update(id=str(uuid.uuid4()), created_at=now, updated_at=now, version=1)
        for counter in self.collection.counters:
            row[counter] = 0
        if "slug" in fields:
            title = str(row.get(self.collection.title_field) or "")
            row["slug"] = row.get("slug") or slugify(title) or row["id"][:8]
            self._ensure_slug_free(row["slug"])
        if "created_by" in fields and identity is not None and not row.get("created_by"):
            row["created_by"] = identity.id
        if "published_at" in fields and row.get("is_published") and not row.get("published_at"):
            row["published_at"] = now

        model = self._validate(row)
        stored = self._insert(model.model_dump())
        logger.info("entity_created", collection=self.collection.name, id=model.id)
        return self.to_model(stored)

    def update(
        self,
        id: str,
        patch: Mapping[str, Any],
        expected_version: int | None = None,
    ) -> T:
        current = self.require(id)
        if expected_version is not None and expected_version != current.version:
            raise self._stale(id, expected_version)

        changes = {k: v for k, v in patch.items() if k not in SERVER_FIELDS}
        if "slug" in changes and changes["slug"] != getattr(current, "slug", None):
            self._ensure_slug_free(changes["slug"])
        if (
            changes.get("is_published")
            and "published_at" in self.model.model_fields
            and not changes.get("published_at")
            and current.published_at is None  # type: ignore[attr-defined]
        ):
            changes["published_at"] = utcnow()

        merged = {
            **current.model_dump(),
            **changes,
            "updated_at": touch(current.updated_at),
            "version": current.version + 1,
        }
        model = self._validate(merged)
        include = (set(changes) & set(self.model.model_fields)) | {"updated_at", "version"}
        stored = self._patch(id, model.model_dump(include=include), current.version)
        if stored is None:
            raise NotFoundError(
                ErrorCode.ENTITY_NOT_FOUND.value,
                f"{self.collection.name} {id} not found",
                {"collection": self.collection.name, "id": id},
            )
        logger.info("entity_updated", collection=self.collection.name, id=id, version=model.version)
        return self.to_model(stored)

    def delete(self, id: str) -> None:
        self._remove(id)
        logger.info("entity_deleted", collection=self.collection.name, id=id)

    # Helpers

    def _validate(self, row: Mapping[str, Any]) -> T:
        try:
            return self.model.model_validate(row)
        except pydantic.ValidationError as exc:
            raise validation_error(exc, collection=self.collection.name) from exc

    def _ensure_slug_free(self, slug: str) -> None:
        if self.get_by_slug(slug) is not None:
            raise ConflictError(
                ErrorCode.SLUG_TAKEN.value,
                f"slug {slug!r} is already used",
                {"collection": self.collection.name, "slug": slug},
            )

    def _stale(self, id: str, expected_version: int | None) -> ConflictError:
        return ConflictError(
            ErrorCode.STALE_VERSION.value,
            "row was modified by someone else",
            {"collection": self.collection.name, "id": id, "expected_version": expected_version},
        )
