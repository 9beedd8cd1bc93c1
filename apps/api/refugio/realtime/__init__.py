from refugio.realtime.live_updates import DOMAIN_TABLES, LiveUpdates
from refugio.realtime.manager import RealtimeManager
from refugio.realtime.status import ChannelState, ConnectionStatus, SubscriptionConfig
from refugio.realtime.transport import (
    FeedTransport,
    RealtimeChannel,
    RealtimeTransport,
    SupabaseTransport,
)

__all__ = [
    "ConnectionStatus",
    "ChannelState",
    "SubscriptionConfig",
    "RealtimeChannel",
    "RealtimeTransport",
    "FeedTransport",
    "SupabaseTransport",
    "RealtimeManager",
    "LiveUpdates",
    "DOMAIN_TABLES",
]
