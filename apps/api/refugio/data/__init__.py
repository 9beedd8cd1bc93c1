from __future__ import annotations

from refugio.data.base import (
    ChangeFeed,
    ChangePayload,
    ChangeType,
    DataClient,
    Subscription,
    parse_filter,
)


def create_data_client(*args, **kwargs):
    from refugio.data.factory import create_data_client as _create_data_client

    return _create_data_client(*args, **kwargs)


def get_data_client():
    from refugio.data.factory import get_data_client as _get_data_client

    return _get_data_client()


__all__ = [
    "ChangeFeed",
    "ChangePayload",
    "ChangeType",
    "DataClient",
    "Subscription",
    "parse_filter",
    "create_data_client",
    "get_data_client",
]
