from __future__ import annotations

import asyncio
import inspect
from contextlib import suppress
from functools import partial
from typing import Any, Awaitable, Callable, Iterable

import structlog

from refugio.core.config import settings
from refugio.data.base import ChangePayload
from refugio.realtime.status import ChannelState, ConnectionStatus, SubscriptionConfig
from refugio.realtime.transport import RealtimeChannel, RealtimeTransport

logger = structlog.get_logger(__name__)

StatusListener = Callable[[ConnectionStatus], None]


class RealtimeManager:
    """Keeps one channel per subscribed table and the aggregate connection status.

    When any channel reports a failure the status goes to ``CLOSED`` and,
    after ``reconnect_delay`` seconds, every channel is torn down and
    subscribed again. There is no backoff and no retry limit.
    """

    def __init__(
        self,
        transport: RealtimeTransport,
        reconnect_delay: float | None = None,
        resubscribe_delay: float | None = None,
        auto_reconnect: bool = True,
    ) -> None:
        self.transport = transport
        self.reconnect_delay = (
            settings.realtime_reconnect_delay if reconnect_delay is None else reconnect_delay
        )
        self.resubscribe_delay = (
            settings.realtime_resubscribe_delay if resubscribe_delay is None else resubscribe_delay
        )
        self.auto_reconnect = auto_reconnect

        self._configs: dict[str, SubscriptionConfig] = {}
        self._channels: dict[str, RealtimeChannel] = {}
        self._states: dict[str, ChannelState | None] = {}
        self._status = ConnectionStatus.CONNECTING
        self._listeners: list[StatusListener] = []
        self._reconnect_task: asyncio.Task | None = None
        self._handler_tasks: set[asyncio.Task] = set()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._lock = asyncio.Lock()
        self._closed = False

    # Status

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status == ConnectionStatus.OPEN

    @property
    def tables(self) -> list[str]:
        return list(self._channels)

    def add_status_listener(self, listener: StatusListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _set_status(self, status: ConnectionStatus) -> None:
        if status == self._status:
            return
        previous, self._status = self._status, status
        logger.info("realtime_status_changed", previous=previous.value, status=status.value)
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception:
                logger.exception("realtime_status_listener_failed")

    # Subscriptions

    async def subscribe(self, configs: Iterable[SubscriptionConfig]) -> None:
        """Replace every current subscription with ``configs``."""
        configs = list(configs)
        tables = [c.table for c in configs]
        if len(set(tables)) != len(tables):
            raise ValueError(f"one subscription per table, got {tables}")
        async with self._lock:
            await self._teardown()
            self._configs = {c.table: c for c in configs}
            await self._open_channels()

    async def subscribe_all(self) -> None:
        """Open channels again for every table subscribed so far."""
        async with self._lock:
            await self._teardown()
            await self._open_channels()

    async def unsubscribe(self, table: str) -> None:
        async with self._lock:
            self._configs.pop(table, None)
            self._states.pop(table, None)
            channel = self._channels.pop(table, None)
            if channel is not None:
                await self._remove(channel)
                logger.info("realtime_unsubscribed", table=table)
            if not self._channels:
                self._set_status(ConnectionStatus.CLOSED)

    async def unsubscribe_all(self) -> None:
        async with self._lock:
            await self._teardown()
            self._configs.clear()
            self._set_status(ConnectionStatus.CLOSED)

    async def reconnect(self) -> None:
        """Tear every channel down and subscribe the same tables again."""
        async with self._lock:
            logger.info("realtime_reconnecting", tables=list(self._configs))
            await self._teardown()
            self._set_status(ConnectionStatus.CONNECTING)
            await asyncio.sleep(self.resubscribe_delay)
            if not self._closed:
                await self._open_channels()

    async def close(self) -> None:
        self._closed = True
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        pending = [t for t in self._handler_tasks if t is not asyncio.current_task()]
        for handler_task in pending:
            handler_task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        async with self._lock:
            await self._teardown()
            self._configs.clear()
        self._set_status(ConnectionStatus.CLOSED)

    async def __aenter__(self) -> "RealtimeManager":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # Internals

    async def _open_channels(self) -> None:
        self._loop = asyncio.get_running_loop()
        if not self._configs:
            self._set_status(ConnectionStatus.CLOSED)
            return
        self._set_status(ConnectionStatus.CONNECTING)
        # Every table counts as pending until its own channel acks.
        self._states = dict.fromkeys(self._configs)
        for table, config in self._configs.items():
            channel = self.transport.channel(f"realtime:{table}")
            for event_type in sorted(config.events, key=lambda e: e.value):
                channel.on_changes(event_type, table, config.filter, partial(self._dispatch, config))
            self._channels[table] = channel
            await channel.subscribe(partial(self._on_channel_state, table, channel))

    async def _teardown(self) -> None:
        channels = list(self._channels.values())
        self._channels.clear()
        self._states.clear()
        for channel in channels:
            await self._remove(channel)

    async def _remove(self, channel: RealtimeChannel) -> None:
        try:
            await self.transport.remove_channel(channel)
        except Exception:
            logger.exception("realtime_channel_remove_failed", channel=channel.name)

    def _on_channel_state(self, table: str, channel: RealtimeChannel, state: ChannelState) -> None:
        if self._channels.get(table) is not channel:
            # Late report from a channel we already removed.
            return
        self._states[table] = state
        if state.is_failure:
            logger.warning("realtime_channel_down", table=table, state=state.value)
            self._set_status(ConnectionStatus.CLOSED)
            self._schedule_reconnect()
        elif all(s == ChannelState.SUBSCRIBED for s in self._states.values()):
            self._set_status(ConnectionStatus.OPEN)

    def _schedule_reconnect(self) -> None:
        if not self.auto_reconnect or self._closed:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if self._loop is None:
                logger.warning("realtime_reconnect_skipped", reason="no event loop")
                return
            self._loop.call_soon_threadsafe(self._schedule_reconnect)
            return
        self._reconnect_task = loop.create_task(self._reconnect_later())

    async def _reconnect_later(self) -> None:
        await asyncio.sleep(self.reconnect_delay)
        self._reconnect_task = None
        if not self._closed:
            await self.reconnect()

    def _dispatch(self, config: SubscriptionConfig, payload: ChangePayload) -> None:
        for handler in (config.handler_for(payload.event_type), config.on_change):
            if handler is None:
                continue
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    self._spawn(result, config.table)
            except Exception:
                logger.exception(
                    "realtime_handler_failed",
                    table=config.table,
                    event_type=payload.event_type.value,
                )

    def _spawn(self, awaitable: Awaitable[Any], table: str) -> None:
        async def run() -> None:
            try:
                await awaitable
            except Exception:
                logger.exception("realtime_handler_failed", table=table)

        try:
            task = asyncio.get_running_loop().create_task(run())
        except RuntimeError:
            if self._loop is None:
                raise
            asyncio.run_coroutine_threadsafe(run(), self._loop)
            return
        self._handler_tasks.add(task)
        task.add_done_callback(self._handler_tasks.discard)
