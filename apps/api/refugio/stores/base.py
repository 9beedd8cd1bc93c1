from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Generic, Iterator, Mapping, TypeVar

import pydantic
import structlog

from refugio.collections import QueryOptions
from refugio.core.clock import utcnow
from refugio.repositories.base import EntityRepository, validation_error
from refugio.schemas.base import Record
from refugio.services.error_codes import ErrorCode
from refugio.services.exceptions import DatabaseError, ErrorInfo, ServiceError

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=Record)
D = TypeVar("D")


@dataclass(frozen=True)
class OperationResult(Generic[D]):
    """What a store operation hands back instead of raising."""

    data: D | None = None
    error: ErrorInfo | None = None

    def __bool__(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, data: D | None = None) -> "OperationResult[D]":
        return cls(data=data)

    @classmethod
    def fail(cls, error: ErrorInfo) -> "OperationResult[D]":
        return cls(error=error)


class EntityStore(Generic[T]):
    """Cached list plus CRUD for one entity kind.

    Successful writes patch the cached list in place so callers see their
    own changes without a refetch; failed ones leave it untouched and set
    ``error``. Once closed, late results are dropped instead of committed.
    """

    def __init__(
        self,
        repository: EntityRepository[T],
        options: QueryOptions | None = None,
        autoload: bool = True,
    ) -> None:
        self.repository = repository
        self._options = options or QueryOptions()
        self._items: list[T] = []
        self._error: ErrorInfo | None = None
        self._pending = 0
        self._generation = 0
        self._closed = False
        self._lock = threading.RLock()
        self.last_refreshed: datetime | None = None
        if autoload:
            self.refresh()

    # State

    @property
    def name(self) -> str:
        return self.repository.collection.name

    @property
    def items(self) -> list[T]:
        return list(self._items)

    @property
    def loading(self) -> bool:
        return self._pending > 0

    @property
    def error(self) -> ErrorInfo | None:
        return self._error

    @property
    def options(self) -> QueryOptions:
        return self._options

    @property
    def closed(self) -> bool:
        return self._closed

    def find(self, id: str) -> T | None:
        return next((item for item in self._items if item.id == id), None)

    # Lifecycle

    def close(self) -> None:
        with self._lock:
            self._closed = True
        logger.debug("store_closed", store=self.name)

    def __enter__(self) -> "EntityStore[T]":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # Operations

    def refresh(self) -> OperationResult[list[T]]:
        with self._lock:
            self._generation += 1
            generation = self._generation
            options = self._options

        def commit(rows: list[T]) -> None:
            if generation != self._generation:
                # A newer fetch owns the list.
                return
            self._items = list(rows)
            self.last_refreshed = utcnow()

        return self._run("refresh", lambda: self.repository.list(options), commit)

    def set_options(self, **changes: Any) -> OperationResult[list[T]]:
        merged = {**self._options.model_dump(), **changes}
        try:
            options = QueryOptions.model_validate(merged)
        except pydantic.ValidationError as exc:
            raise validation_error(exc, store=self.name) from exc
        with self._lock:
            self._options = options
        return self.refresh()

    def get_by_slug(self, slug: str) -> OperationResult[T]:
        """Look a row up by slug; a miss is ``ok(None)``, not an error."""
        return self._run(
            "get_by_slug", lambda: self.repository.get_by_slug(slug), track_error=False, slug=slug
        )

    def create(self, data: Mapping[str, Any], identity=None) -> OperationResult[T]:
        def commit(created: T) -> None:
            self._items = [created, *self._items]

        return self._run("create", lambda: self.repository.create(data, identity), commit)

    def update(
        self,
        id: str,
        patch: Mapping[str, Any],
        expected_version: int | None = None,
    ) -> OperationResult[T]:
        """Apply patch, guarded by ``expected_version`` or the cached row's version."""
        if expected_version is None:
            cached = self.find(id)
            expected_version = cached.version if cached is not None else None
        return self._run(
            "update",
            lambda: self.repository.update(id, patch, expected_version=expected_version),
            self._replace,
            id=id,
        )

    def delete(self, id: str) -> OperationResult[None]:
        def commit(_: None) -> None:
            self._items = [item for item in self._items if item.id != id]

        return self._run("delete", lambda: self.repository.delete(id), commit, id=id)

    # Internals

    def _replace(self, updated: T) -> None:
        self._items = [updated if item.id == updated.id else item for item in self._items]

    @contextmanager
    def _busy(self) -> Iterator[None]:
        with self._lock:
            self._pending += 1
        try:
            yield
        finally:
            with self._lock:
                self._pending -= 1

    def _run(
        self,
        operation: str,
        call: Callable[[], D],
        commit: Callable[[D], None] | None = None,
        track_error: bool = True,
        **context: Any,
    ) -> OperationResult[D]:
        if track_error and not self._closed:
            self._error = None
        with self._busy():
            try:
                data = call()
            except ServiceError as exc:
                info = exc.to_info(operation=operation, store=self.name, **context)
                logger.warning(
                    "store_operation_failed",
                    store=self.name,
                    operation=operation,
                    code=exc.code,
                    error=exc.message,
                    **context,
                )
                with self._lock:
                    if track_error and not self._closed:
                        self._error = info
                return OperationResult.fail(info)
            except Exception as exc:
                logger.exception(
                    "store_operation_crashed", store=self.name, operation=operation, **context
                )
                wrapped = DatabaseError(ErrorCode.DATABASE_ERROR.value, str(exc) or type(exc).__name__)
                info = wrapped.to_info(
                    operation=operation, store=self.name, exception=type(exc).__name__, **context
                )
                with self._lock:
                    if track_error and not self._closed:
                        self._error = info
                return OperationResult.fail(info)

            with self._lock:
                if self._closed:
                    logger.debug("store_result_dropped", store=self.name, operation=operation)
                elif commit is not None:
                    commit(data)
        return OperationResult.ok(data)
