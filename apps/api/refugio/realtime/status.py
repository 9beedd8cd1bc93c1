from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable

from refugio.data.base import ALL_CHANGES, ChangePayload, ChangeType


class ConnectionStatus(str, Enum):
    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class ChannelState(str, Enum):
    SUBSCRIBED = "SUBSCRIBED"
    CLOSED = "CLOSED"
    CHANNEL_ERROR = "CHANNEL_ERROR"
    TIMED_OUT = "TIMED_OUT"

    @property
    def is_failure(self) -> bool:
        return self is not ChannelState.SUBSCRIBED


Handler = Callable[[ChangePayload], "Awaitable[Any] | Any"]


@dataclass(frozen=True)
class SubscriptionConfig:
    table: str
    events: frozenset[ChangeType] = ALL_CHANGES
    filter: str | None = None
    on_insert: Handler | None = None
    on_update: Handler | None = None
    on_delete: Handler | None = None
    on_change: Handler | None = None

    @classmethod
    def for_table(cls, table: str, events: Iterable[ChangeType | str] | None = None, **handlers) -> "SubscriptionConfig":
        selected = frozenset(ChangeType(e) for e in events) if events else ALL_CHANGES
        return cls(table=table, events=selected, **handlers)

    def handler_for(self, event_type: ChangeType) -> Handler | None:
        return {
            ChangeType.INSERT: self.on_insert,
            ChangeType.UPDATE: self.on_update,
            ChangeType.DELETE: self.on_delete,
        }[event_type]
