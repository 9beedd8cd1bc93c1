from __future__ import annotations

import uuid
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Sequence

import sqlalchemy as sa
import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from refugio.collections import Filter
from refugio.core.clock import touch
from refugio.data.base import (
    LIKE_ESCAPE,
    ChangeFeed,
    ChangePayload,
    ChangeType,
    DataClient,
    Row,
    like_pattern,
)
from refugio.db import create_db_engine, create_session_factory
from refugio.models import Base
from refugio.services.error_codes import ErrorCode
from refugio.services.exceptions import (
    ConflictError,
    DatabaseError,
    NetworkError,
    NotFoundError,
    ServiceError,
)

logger = structlog.get_logger(__name__)


def _bindable(row: Row) -> Row:
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in row.items()}


def _clause(column: sa.Column, flt: Filter):
    value = flt.value.value if isinstance(flt.value, Enum) else flt.value
    if flt.op == "eq":
        return column.is_(None) if value is None else column == value
    if flt.op == "gte":
        return column >= value
    if flt.op == "lte":
        return column <= value
    return column.ilike(like_pattern(value), escape=LIKE_ESCAPE)


class SqlDataClient(DataClient):
    """DataClient over the ORM table metadata using SQLAlchemy Core."""

    def __init__(self, engine: Engine, feed: ChangeFeed | None = None) -> None:
        self._engine = engine
        self._session_factory = create_session_factory(engine)
        self.feed = feed or ChangeFeed()

    @classmethod
    def from_url(cls, database_url: str | None = None, create_schema: bool = False) -> "SqlDataClient":
        client = cls(create_db_engine(database_url))
        if create_schema:
            client.create_schema()
        return client

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_schema(self) -> None:
        Base.metadata.create_all(self._engine)

    def _table(self, name: str) -> sa.Table:
        try:
            return Base.metadata.tables[name]
        except KeyError:
            raise DatabaseError(
                ErrorCode.DATABASE_ERROR.value, f"unknown table: {name}", {"table": name}
            ) from None

    @contextmanager
    def _transaction(self, operation: str, table: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except ServiceError:
            session.rollback()
            raise
        except IntegrityError as exc:
            session.rollback()
            raise ConflictError(
                ErrorCode.DUPLICATE_RECORD.value,
                "record conflicts with an existing row",
                {"table": table, "operation": operation},
            ) from exc
        except OperationalError as exc:
            session.rollback()
            logger.warning("db_operational_error", table=table, operation=operation, error=str(exc))
            if exc.connection_invalidated:
                raise NetworkError(
                    ErrorCode.NETWORK_ERROR.value,
                    "database connection lost",
                    {"table": table, "operation": operation},
                ) from exc
            raise DatabaseError(
                ErrorCode.DATABASE_ERROR.value, str(exc.orig), {"table": table, "operation": operation}
            ) from exc
        except SQLAlchemyError as exc:
            session.rollback()
            raise DatabaseError(
                ErrorCode.DATABASE_ERROR.value, str(exc), {"table": table, "operation": operation}
            ) from exc
        finally:
            session.close()

    @staticmethod
    def _fetch(session: Session, table: sa.Table, id: str, lock: bool = False) -> Row | None:
        stmt = sa.select(table).where(table.c.id == id)
        if lock:
            stmt = stmt.with_for_update()
        row = session.execute(stmt).mappings().first()
        return dict(row) if row is not None else None

    def query(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Row]:
        tbl = self._table(table)
        stmt = sa.select(tbl)
        for flt in filters:
            stmt = stmt.where(_clause(tbl.c[flt.column], flt))
        if order_by:
            column = tbl.c[order_by]
            stmt = stmt.order_by((column.desc() if descending else column.asc()).nulls_last())
        if limit:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)
        with self._transaction("query", table) as session:
            return [dict(r) for r in session.execute(stmt).mappings().all()]

    def insert(self, table: str, row: Row) -> Row:
        tbl = self._table(table)
        values = _bindable(row)
        with self._transaction("insert", table) as session:
            result = session.execute(sa.insert(tbl).values(**values))
            new_id = values.get("id") or result.inserted_primary_key[0]
            stored = self._fetch(session, tbl, new_id)
        self.feed.publish(ChangePayload(table, ChangeType.INSERT, new=stored))
        return stored

    def update(
        self,
        table: str,
        id: str,
        patch: Row,
        expected_version: int | None = None,
    ) -> Row | None:
        tbl = self._table(table)
        with self._transaction("update", table) as session:
            old = self._fetch(session, tbl, id)
            if old is None:
                return None
            stmt = sa.update(tbl).where(tbl.c.id == id)
            if expected_version is not None:
                stmt = stmt.where(tbl.c.version == expected_version)
            result = session.execute(stmt.values(**_bindable(patch)))
            if result.rowcount == 0:
                raise ConflictError(
                    ErrorCode.STALE_VERSION.value,
                    "row was modified by someone else",
                    {"table": table, "id": id, "expected_version": expected_version},
                )
            new = self._fetch(session, tbl, id)
        self.feed.publish(ChangePayload(table, ChangeType.UPDATE, new=new, old=old))
        return new

    def delete(self, table: str, id: str) -> None:
        tbl = self._table(table)
        with self._transaction("delete", table) as session:
            old = self._fetch(session, tbl, id)
            if old is None:
                return
            session.execute(sa.delete(tbl).where(tbl.c.id == id))
        self.feed.publish(ChangePayload(table, ChangeType.DELETE, old=old))

    def register_attendance(self, event_id: str, registration: Row) -> tuple[Row, Row]:
        events = self._table("events")
        registrations = self._table("event_registrations")
        values = {**_bindable(registration), "event_id": event_id}
        values.setdefault("id", str(uuid.uuid4()))
        guests = int(values.get("guests") or 1)

        with self._transaction("register_attendance", "events") as session:
            old_event = self._fetch(session, events, event_id, lock=True)
            if old_event is None:
                raise NotFoundError(
                    ErrorCode.EVENT_NOT_FOUND.value, "event not found", {"event_id": event_id}
                )
            capacity = old_event["max_attendees"]
            if capacity is not None and old_event["current_attendees"] + guests > capacity:
                raise ConflictError(
                    ErrorCode.EVENT_FULL.value,
                    "not enough spots left for this registration",
                    {
                        "event_id": event_id,
                        "available": max(0, capacity - old_event["current_attendees"]),
                        "requested": guests,
                    },
                )
            session.execute(sa.insert(registrations).values(**values))
            session.execute(
                sa.update(events)
                .where(events.c.id == event_id)
                .values(
                    current_attendees=events.c.current_attendees + guests,
                    version=events.c.version + 1,
                    updated_at=touch(old_event["updated_at"]),
                )
            )
            stored = self._fetch(session, registrations, values["id"])
            event = self._fetch(session, events, event_id)

        self.feed.publish(ChangePayload("event_registrations", ChangeType.INSERT, new=stored))
        self.feed.publish(ChangePayload("events", ChangeType.UPDATE, new=event, old=old_event))
        logger.info("attendance_registered", event_id=event_id, guests=guests)
        return stored, event

    def close(self) -> None:
        self._engine.dispose()
