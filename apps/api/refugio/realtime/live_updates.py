from __future__ import annotations

from datetime import datetime
from typing import Callable

import structlog

from refugio.core.clock import utcnow
from refugio.data.base import ChangePayload
from refugio.realtime.manager import RealtimeManager
from refugio.realtime.status import ConnectionStatus, SubscriptionConfig

logger = structlog.get_logger(__name__)

DOMAIN_TABLES: dict[str, tuple[str, ...]] = {
    "blogs": ("blog_posts", "blog_categories", "blog_interactions"),
    "events": ("events", "event_categories", "event_interactions"),
    "sermons": ("sermons", "sermon_categories", "sermon_interactions"),
}

DomainCallback = Callable[[ChangePayload], None]


class LiveUpdates:
    """Site-wide change tracking for the public content tables.

    Counts changes per domain, remembers when the last one arrived and fans
    payloads out to per-domain callbacks and bound stores.
    """

    def __init__(
        self,
        manager: RealtimeManager,
        on_blog_update: DomainCallback | None = None,
        on_event_update: DomainCallback | None = None,
        on_sermon_update: DomainCallback | None = None,
    ) -> None:
        self.manager = manager
        self.counts: dict[str, int] = {domain: 0 for domain in DOMAIN_TABLES}
        self.last_update: datetime | None = None
        self._callbacks: dict[str, list[DomainCallback]] = {domain: [] for domain in DOMAIN_TABLES}
        for domain, callback in (
            ("blogs", on_blog_update),
            ("events", on_event_update),
            ("sermons", on_sermon_update),
        ):
            if callback is not None:
                self._callbacks[domain].append(callback)

    @property
    def connection_status(self) -> ConnectionStatus:
        return self.manager.status

    @property
    def is_connected(self) -> bool:
        return self.manager.is_connected

    def configs(self) -> list[SubscriptionConfig]:
        return [
            SubscriptionConfig(table=table, on_change=self._handler(domain))
            for domain, tables in DOMAIN_TABLES.items()
            for table in tables
        ]

    def on_update(self, domain: str, callback: DomainCallback) -> None:
        if domain not in DOMAIN_TABLES:
            raise ValueError(f"unknown domain: {domain}")
        self._callbacks[domain].append(callback)

    def bind_store(self, domain: str, store) -> None:
        """Refetch ``store`` whenever its domain changes."""
        self.on_update(domain, lambda _payload: store.refresh())

    async def start(self) -> None:
        await self.manager.subscribe(self.configs())

    async def reconnect(self) -> None:
        await self.manager.reconnect()

    async def stop(self) -> None:
        await self.manager.unsubscribe_all()

    def _handler(self, domain: str) -> DomainCallback:
        def handle(payload: ChangePayload) -> None:
            self.counts[domain] += 1
            self.last_update = utcnow()
            logger.debug(
                "live_update",
                domain=domain,
                table=payload.table,
                event_type=payload.event_type.value,
            )
            for callback in list(self._callbacks[domain]):
                callback(payload)

        return handle
