from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Sequence

import httpx
import structlog
from postgrest.exceptions import APIError
from pydantic import TypeAdapter
from supabase import Client, create_client

from refugio.collections import Filter
from refugio.core.config import settings
from refugio.data.base import ChangeFeed, ChangePayload, ChangeType, DataClient, Row, like_pattern
from refugio.services.error_codes import ErrorCode
from refugio.services.exceptions import (
    ConflictError,
    DatabaseError,
    NetworkError,
    NotFoundError,
    ServiceError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

_ROW = TypeAdapter(dict[str, Any])


def _jsonable(row: Row) -> Row:
    return _ROW.dump_python(row, mode="json")


def _map_api_error(exc: APIError, table: str, operation: str) -> ServiceError:
    code = str(exc.code or "")
    message = exc.message or str(exc)
    context = {"table": table, "operation": operation, "pg_code": code}
    if code == "PGRST116":
        return NotFoundError(ErrorCode.ENTITY_NOT_FOUND.value, message, context)
    if code == "23505":
        return ConflictError(ErrorCode.DUPLICATE_RECORD.value, message, context)
    if code == "23503":
        return ValidationError(ErrorCode.VALIDATION_FAILED.value, message, context)
    # Raised by register_for_event.
    if "EVENT_FULL" in message:
        return ConflictError(ErrorCode.EVENT_FULL.value, "not enough spots left for this registration", context)
    if "EVENT_NOT_FOUND" in message:
        return NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found", context)
    return DatabaseError(ErrorCode.DATABASE_ERROR.value, message, context)


class SupabaseDataClient(DataClient):
    """DataClient backed by the hosted Postgres through the postgrest builder."""

    def __init__(self, client: Client, feed: ChangeFeed | None = None) -> None:
        self._client = client
        self.feed = feed or ChangeFeed()

    @classmethod
    def from_settings(cls, url: str | None = None, key: str | None = None) -> "SupabaseDataClient":
        url = url or settings.supabase_url
        key = key or settings.supabase_key
        if not url or not key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY are required for the supabase backend")
        return cls(create_client(url, key))

    @contextmanager
    def _request(self, operation: str, table: str) -> Iterator[None]:
        try:
            yield
        except APIError as exc:
            error = _map_api_error(exc, table, operation)
            logger.warning("postgrest_error", table=table, operation=operation, code=error.code)
            raise error from exc
        except httpx.HTTPError as exc:
            logger.warning("postgrest_unreachable", table=table, operation=operation, error=str(exc))
            raise NetworkError(
                ErrorCode.NETWORK_ERROR.value,
                "could not reach the data service",
                {"table": table, "operation": operation},
            ) from exc

    def query(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Row]:
        request = self._client.table(table).select("*")
        for flt in filters:
            value = _jsonable({"v": flt.value})["v"]
            if flt.op == "eq":
                request = request.is_(flt.column, "null") if value is None else request.eq(flt.column, value)
            elif flt.op == "gte":
                request = request.gte(flt.column, value)
            elif flt.op == "lte":
                request = request.lte(flt.column, value)
            else:
                request = request.ilike(flt.column, like_pattern(value))
        if order_by:
            request = request.order(order_by, desc=descending, nullsfirst=False)
        if limit and offset:
            request = request.range(offset, offset + limit - 1)
        elif limit:
            request = request.limit(limit)
        with self._request("query", table):
            return list(request.execute().data or [])

    def insert(self, table: str, row: Row) -> Row:
        with self._request("insert", table):
            stored = self._client.table(table).insert(_jsonable(row)).execute().data[0]
        self.feed.publish(ChangePayload(table, ChangeType.INSERT, new=stored))
        return stored

    def update(
        self,
        table: str,
        id: str,
        patch: Row,
        expected_version: int | None = None,
    ) -> Row | None:
        request = self._client.table(table).update(_jsonable(patch)).eq("id", id)
        if expected_version is not None:
            request = request.eq("version", expected_version)
        with self._request("update", table):
            rows = request.execute().data or []
        if not rows:
            if expected_version is not None and self.get(table, id) is not None:
                raise ConflictError(
                    ErrorCode.STALE_VERSION.value,
                    "row was modified by someone else",
                    {"table": table, "id": id, "expected_version": expected_version},
                )
            return None
        self.feed.publish(ChangePayload(table, ChangeType.UPDATE, new=rows[0]))
        return rows[0]

    def delete(self, table: str, id: str) -> None:
        with self._request("delete", table):
            rows = self._client.table(table).delete().eq("id", id).execute().data or []
        for old in rows:
            self.feed.publish(ChangePayload(table, ChangeType.DELETE, old=old))

    def register_attendance(self, event_id: str, registration: Row) -> tuple[Row, Row]:
        params = {"p_event_id": event_id, "p_registration": _jsonable(registration)}
        with self._request("register_attendance", "events"):
            result = self._client.rpc("register_for_event", params).execute().data
        stored, event = result["registration"], result["event"]
        self.feed.publish(ChangePayload("event_registrations", ChangeType.INSERT, new=stored))
        self.feed.publish(ChangePayload("events", ChangeType.UPDATE, new=event))
        logger.info("attendance_registered", event_id=event_id, guests=stored.get("guests"))
        return stored, event
