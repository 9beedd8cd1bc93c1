from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable, Sequence

import structlog

from refugio.collections import Filter
from refugio.core.clock import utcnow

logger = structlog.get_logger(__name__)

Row = dict[str, Any]


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


ALL_CHANGES = frozenset(ChangeType)


@dataclass(frozen=True)
class ChangePayload:
    table: str
    event_type: ChangeType
    new: Row = field(default_factory=dict)
    old: Row = field(default_factory=dict)
    commit_timestamp: datetime = field(default_factory=utcnow)

    @property
    def record(self) -> Row:
        return self.old if self.event_type == ChangeType.DELETE else self.new


ChangeCallback = Callable[[ChangePayload], None]


def parse_filter(expr: str | None) -> Filter | None:
    """Parse a ``column=op.value`` predicate as used by postgres change filters."""
    if not expr:
        return None
    column, sep, rest = expr.partition("=")
    op, dot, raw = rest.partition(".")
    if not sep or not dot or not column:
        raise ValueError(f"invalid change filter: {expr!r}")
    value: Any = raw
    if raw in {"true", "false"}:
        value = raw == "true"
    return Filter(column.strip(), op.strip(), value)


LIKE_ESCAPE = "\\"


def like_pattern(value: Any) -> str:
    """Substring pattern for ``ilike`` that matches ``%`` and ``_`` literally."""
    text = str(value)
    for char in (LIKE_ESCAPE, "%", "_"):
        text = text.replace(char, LIKE_ESCAPE + char)
    return f"%{text}%"


def _filter_matches(flt: Filter, row: Row) -> bool:
    actual = row.get(flt.column)
    if flt.op == "eq" and not isinstance(flt.value, bool):
        # Filter strings carry text; ids and numbers compare as text.
        return actual is not None and str(actual) == flt.value
    return flt.matches(row)


@dataclass(eq=False)
class Subscription:
    table: str
    events: frozenset[ChangeType]
    filter: Filter | None
    callback: ChangeCallback
    _feed: "ChangeFeed | None" = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        return self._feed is not None

    def wants(self, payload: ChangePayload) -> bool:
        if payload.table != self.table or payload.event_type not in self.events:
            return False
        return self.filter is None or _filter_matches(self.filter, payload.record)

    def unsubscribe(self) -> None:
        feed, self._feed = self._feed, None
        if feed is not None:
            feed._remove(self)


class ChangeFeed:
    """In-process fan-out of committed row changes.

    Publishers call ``publish`` after their write is durable, so delivery
    order follows commit order. A failing callback is logged and does not
    stop delivery to the others.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        events: Iterable[ChangeType] | None = None,
        filter: str | Filter | None = None,
    ) -> Subscription:
        flt = parse_filter(filter) if isinstance(filter, str) or filter is None else filter
        sub = Subscription(
            table=table,
            events=frozenset(events) if events else ALL_CHANGES,
            filter=flt,
            callback=callback,
            _feed=self,
        )
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, payload: ChangePayload) -> None:
        with self._lock:
            targets = [s for s in self._subscriptions if s.wants(payload)]
        for sub in targets:
            try:
                sub.callback(payload)
            except Exception:
                logger.exception(
                    "change_callback_failed",
                    table=payload.table,
                    event_type=payload.event_type.value,
                )


class DataClient(ABC):
    """Row-level access to the hosted tables.

    Rows are plain dicts keyed by column name. Implementations publish their
    own committed writes to ``feed``.
    """

    feed: ChangeFeed

    @abstractmethod
    def query(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Row]:
        """Return rows matching every filter, skipping the first ``offset``."""

    @abstractmethod
    def insert(self, table: str, row: Row) -> Row:
        """Insert one row and return it as stored."""

    @abstractmethod
    def update(
        self,
        table: str,
        id: str,
        patch: Row,
        expected_version: int | None = None,
    ) -> Row | None:
        """Apply ``patch`` to one row.

        Returns ``None`` when the row does not exist and raises
        ``ConflictError`` when ``expected_version`` is stale.
        """

    @abstractmethod
    def delete(self, table: str, id: str) -> None:
        """Delete one row if it exists."""

    @abstractmethod
    def register_attendance(self, event_id: str, registration: Row) -> tuple[Row, Row]:
        """Insert a registration and bump the event's attendee count atomically.

        Returns ``(registration, event)`` as stored.
        """

    def get(self, table: str, id: str) -> Row | None:
        rows = self.query(table, [Filter("id", "eq", id)], limit=1)
        return rows[0] if rows else None

    def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        events: Iterable[ChangeType] | None = None,
        filter: str | None = None,
    ) -> Subscription:
        return self.feed.subscribe(table, callback, events=events, filter=filter)

    def close(self) -> None:
        return None
