from __future__ import annotations

from functools import lru_cache

from refugio.core.config import settings
from refugio.data.base import DataClient


def create_data_client(backend: str | None = None, database_url: str | None = None) -> DataClient:
    selected_backend = (backend or settings.data_backend).strip().lower()
    if selected_backend == "sql":
        from refugio.data.sql import SqlDataClient

        return SqlDataClient.from_url(database_url, create_schema=True)
    if selected_backend == "supabase":
        from refugio.data.supabase import SupabaseDataClient

        return SupabaseDataClient.from_settings()
    raise ValueError(f"unsupported data backend: {selected_backend}")


@lru_cache(maxsize=1)
def get_data_client() -> DataClient:
    return create_data_client()
