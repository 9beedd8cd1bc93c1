from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable

import structlog

from refugio.core.clock import utcnow
from refugio.data.base import ChangeCallback, ChangeFeed, ChangePayload, ChangeType, Subscription
from refugio.realtime.status import ChannelState

logger = structlog.get_logger(__name__)

StateCallback = Callable[[ChannelState], None]


class RealtimeChannel(ABC):
    """A named group of change bindings that is subscribed as one unit."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.state: ChannelState | None = None
        self._on_state: StateCallback | None = None

    @abstractmethod
    def on_changes(
        self,
        event_type: ChangeType,
        table: str,
        filter: str | None,
        callback: ChangeCallback,
    ) -> "RealtimeChannel":
        """Bind a callback to one event type on one table."""

    @abstractmethod
    async def subscribe(self, on_state: StateCallback) -> None:
        """Start delivery; ``on_state`` hears every state change from now on."""

    @abstractmethod
    async def close(self) -> None:
        """Stop delivery."""

    def _report(self, state: ChannelState) -> None:
        self.state = state
        if self._on_state is not None:
            self._on_state(state)


class RealtimeTransport(ABC):
    @abstractmethod
    def channel(self, name: str) -> RealtimeChannel:
        """Create an unsubscribed channel."""

    async def remove_channel(self, channel: RealtimeChannel) -> None:
        await channel.close()


class FeedChannel(RealtimeChannel):
    def __init__(self, name: str, transport: "FeedTransport") -> None:
        super().__init__(name)
        self._transport = transport
        self._bindings: list[tuple[ChangeType, str, str | None, ChangeCallback]] = []
        self._subscriptions: list[Subscription] = []

    def on_changes(self, event_type, table, filter, callback) -> "FeedChannel":
        self._bindings.append((event_type, table, filter, callback))
        return self

    async def subscribe(self, on_state: StateCallback) -> None:
        self._on_state = on_state
        if not self._transport.available:
            self._report(ChannelState.CHANNEL_ERROR)
            return
        for event_type, table, flt, callback in self._bindings:
            self._subscriptions.append(
                self._transport.feed.subscribe(table, callback, events=[event_type], filter=flt)
            )
        self._transport._live.add(self)
        self._report(ChannelState.SUBSCRIBED)

    def _detach(self) -> None:
        self._transport._live.discard(self)
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions.clear()

    def drop(self, state: ChannelState = ChannelState.CLOSED) -> None:
        self._detach()
        self._report(state)

    async def close(self) -> None:
        self.drop(ChannelState.CLOSED)


class FeedTransport(RealtimeTransport):
    """Delivers changes from an in-process ChangeFeed.

    Used with the SQL and local backings, where every write in this process
    is published to the feed.
    """

    def __init__(self, feed: ChangeFeed) -> None:
        self.feed = feed
        self.available = True
        self._live: set[FeedChannel] = set()

    def channel(self, name: str) -> FeedChannel:
        return FeedChannel(name, self)

    def disconnect(self, available: bool = True) -> None:
        """Drop every live channel the way a lost socket would.

        With ``available=False`` new subscriptions fail until ``restore``.
        """
        self.available = available
        for channel in list(self._live):
            channel.drop(ChannelState.CLOSED)
        logger.info("feed_transport_disconnected", available=available)

    def restore(self) -> None:
        self.available = True


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("realtime_bad_timestamp", value=value)
    return utcnow()


def payload_from_postgres_changes(raw: dict[str, Any]) -> ChangePayload:
    """Normalize a postgres_changes message from the hosted realtime service."""
    data = raw.get("data", raw)
    return ChangePayload(
        table=data.get("table", ""),
        event_type=ChangeType(data.get("type") or data.get("eventType")),
        new=data.get("record") or data.get("new") or {},
        old=data.get("old_record") or data.get("old") or {},
        commit_timestamp=_parse_timestamp(data.get("commit_timestamp")),
    )


class SupabaseChannel(RealtimeChannel):
    def __init__(self, name: str, channel: Any) -> None:
        super().__init__(name)
        self.raw = channel

    def on_changes(self, event_type, table, filter, callback) -> "SupabaseChannel":
        def relay(message: dict[str, Any]) -> None:
            callback(payload_from_postgres_changes(message))

        self.raw.on_postgres_changes(
            event_type.value, relay, table=table, schema="public", filter=filter
        )
        return self

    async def subscribe(self, on_state: StateCallback) -> None:
        self._on_state = on_state

        def relay(state: Any, error: Exception | None = None) -> None:
            value = str(getattr(state, "value", state))
            try:
                channel_state = ChannelState(value)
            except ValueError:
                channel_state = ChannelState.CHANNEL_ERROR
            if error is not None:
                logger.warning("realtime_channel_error", channel=self.name, error=str(error))
            self._report(channel_state)

        await self.raw.subscribe(relay)

    async def close(self) -> None:
        await self.raw.unsubscribe()


class SupabaseTransport(RealtimeTransport):
    """Postgres change streams from the hosted realtime service."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    async def connect(cls, url: str, key: str) -> "SupabaseTransport":
        from supabase import acreate_client

        return cls(await acreate_client(url, key))

    def channel(self, name: str) -> SupabaseChannel:
        return SupabaseChannel(name, self._client.channel(name))

    async def remove_channel(self, channel: RealtimeChannel) -> None:
        if isinstance(channel, SupabaseChannel):
            await self._client.remove_channel(channel.raw)
        else:
            await channel.close()
