from __future__ import annotations

from datetime import date, datetime, timezone
from types import SimpleNamespace

import httpx
import pytest
from postgrest.exceptions import APIError

from refugio.collections import SERMONS, Filter
from refugio.data.base import ChangeFeed, ChangePayload, ChangeType, like_pattern, parse_filter
from refugio.data.supabase import SupabaseDataClient, _map_api_error
from refugio.repositories import RemoteRepository
from refugio.services.error_codes import ErrorCode
from refugio.services.exceptions import (
    ConflictError,
    DatabaseError,
    NetworkError,
    NotFoundError,
    ValidationError,
)


def _category(**overrides):
    stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
    row = {
        "id": "c1",
        "name": "Doctrina",
        "slug": "doctrina",
        "created_at": stamp,
        "updated_at": stamp,
        "version": 1,
    }
    row.update(overrides)
    return row


# SQL client


def test_sql_update_is_compare_and_set(sql_client):
    sql_client.insert("sermon_categories", _category())
    seen = []
    sql_client.subscribe("sermon_categories", seen.append, events=[ChangeType.UPDATE])

    updated = sql_client.update("sermon_categories", "c1", {"name": "Fe", "version": 2}, expected_version=1)

    assert updated["name"] == "Fe"
    with pytest.raises(ConflictError) as exc:
        sql_client.update("sermon_categories", "c1", {"name": "Otro"}, expected_version=1)
    assert exc.value.code == ErrorCode.STALE_VERSION.value
    assert sql_client.update("sermon_categories", "missing", {"name": "x"}) is None
    assert [p.new["name"] for p in seen] == ["Fe"]
    assert seen[0].old["name"] == "Doctrina"


def test_sql_duplicate_slug_is_conflict(sql_client):
    sql_client.insert("sermon_categories", _category())

    with pytest.raises(ConflictError) as exc:
        sql_client.insert("sermon_categories", _category(id="c2"))

    assert exc.value.code == ErrorCode.DUPLICATE_RECORD.value
    assert len(sql_client.query("sermon_categories")) == 1


def test_sql_query_filters(sql_client):
    sql_client.insert("sermon_categories", _category(display_order=2))
    sql_client.insert("sermon_categories", _category(id="c2", name="Familia", slug="familia", display_order=1))

    ordered = sql_client.query("sermon_categories", order_by="display_order")
    searched = sql_client.query("sermon_categories", [Filter("name", "ilike", "fam")])

    assert [r["id"] for r in ordered] == ["c2", "c1"]
    assert [r["id"] for r in searched] == ["c2"]
    assert sql_client.get("sermon_categories", "c1")["name"] == "Doctrina"


def test_sql_query_pages_with_offset(sql_client):
    for n in range(5):
        sql_client.insert(
            "sermon_categories", _category(id=f"c{n}", name=f"Tema {n}", slug=f"tema-{n}", display_order=n)
        )

    page = sql_client.query("sermon_categories", order_by="display_order", limit=2, offset=2)
    tail = sql_client.query("sermon_categories", order_by="display_order", offset=4)

    assert [r["id"] for r in page] == ["c2", "c3"]
    assert [r["id"] for r in tail] == ["c4"]


def test_sql_search_treats_wildcards_literally(sql_client):
    sql_client.insert("sermon_categories", _category(name="100% Gracia"))
    sql_client.insert("sermon_categories", _category(id="c2", name="1000 Gracias", slug="mil"))
    sql_client.insert("sermon_categories", _category(id="c3", name="fe_viva", slug="fe-viva"))
    sql_client.insert("sermon_categories", _category(id="c4", name="fe viva", slug="fe-viva-2"))

    percent = sql_client.query("sermon_categories", [Filter("name", "ilike", "100%")])
    underscore = sql_client.query("sermon_categories", [Filter("name", "ilike", "fe_")])

    assert [r["id"] for r in percent] == ["c1"]
    assert [r["id"] for r in underscore] == ["c3"]


def test_like_pattern_escapes_wildcards():
    assert like_pattern("fe") == "%fe%"
    assert like_pattern("100%_x") == "%100\\%\\_x%"


def test_sql_delete_publishes_old_row(sql_client):
    sql_client.insert("sermon_categories", _category())
    seen = []
    sql_client.subscribe("sermon_categories", seen.append)

    sql_client.delete("sermon_categories", "c1")
    sql_client.delete("sermon_categories", "c1")

    assert [p.event_type for p in seen] == [ChangeType.DELETE]
    assert seen[0].record["id"] == "c1"


def test_sql_unknown_table(sql_client):
    with pytest.raises(DatabaseError):
        sql_client.query("podcasts")


# Change feed


def test_parse_filter():
    flt = parse_filter("is_published=eq.true")

    assert (flt.column, flt.op, flt.value) == ("is_published", "eq", True)
    assert parse_filter(None) is None
    with pytest.raises(ValueError):
        parse_filter("is_published")


def test_feed_filter_compares_ids_as_text():
    feed = ChangeFeed()
    seen = []
    feed.subscribe("event_registrations", seen.append, filter="guests=eq.2")

    feed.publish(ChangePayload("event_registrations", ChangeType.INSERT, new={"guests": 2}))
    feed.publish(ChangePayload("event_registrations", ChangeType.INSERT, new={"guests": 3}))

    assert len(seen) == 1


def test_feed_unsubscribe_and_failing_callback():
    feed = ChangeFeed()
    seen = []

    def broken(_payload):
        raise RuntimeError("boom")

    feed.subscribe("events", broken)
    sub = feed.subscribe("events", seen.append)
    feed.publish(ChangePayload("events", ChangeType.INSERT, new={"id": "1"}))
    sub.unsubscribe()
    sub.unsubscribe()
    feed.publish(ChangePayload("events", ChangeType.INSERT, new={"id": "2"}))

    assert len(seen) == 1
    assert sub.active is False
    assert feed.subscriber_count == 1


# Supabase client, against an in-memory stand-in for the postgrest builder


class FakeRequest:
    def __init__(self, rows: list[dict], op: str, payload: dict | None = None) -> None:
        self.rows = rows
        self.op = op
        self.payload = payload
        self.preds = []
        self.ordering = None
        self.max_rows = None
        self.start = 0

    def eq(self, column, value):
        self.preds.append(lambda r: r.get(column) == value)
        return self

    def is_(self, column, value):
        self.preds.append(lambda r: r.get(column) is None)
        return self

    def gte(self, column, value):
        self.preds.append(lambda r: r.get(column) is not None and r[column] >= value)
        return self

    def lte(self, column, value):
        self.preds.append(lambda r: r.get(column) is not None and r[column] <= value)
        return self

    def ilike(self, column, pattern):
        needle = pattern[1:-1].replace("\\%", "%").replace("\\_", "_").lower()
        self.preds.append(lambda r: needle in str(r.get(column) or "").lower())
        return self

    def order(self, column, desc=False, nullsfirst=False):
        self.ordering = (column, desc)
        return self

    def limit(self, n):
        self.max_rows = n
        return self

    def range(self, start, end):
        self.start = start
        self.max_rows = end - start + 1
        return self

    def execute(self):
        if self.op == "insert":
            self.rows.append(dict(self.payload))
            return SimpleNamespace(data=[dict(self.payload)])
        matched = [r for r in self.rows if all(p(r) for p in self.preds)]
        if self.op == "update":
            for row in matched:
                row.update(self.payload)
        elif self.op == "delete":
            self.rows[:] = [r for r in self.rows if r not in matched]
        elif self.ordering:
            column, desc = self.ordering
            matched.sort(key=lambda r: r.get(column), reverse=desc)
        if self.max_rows:
            matched = matched[self.start : self.start + self.max_rows]
        return SimpleNamespace(data=[dict(r) for r in matched])


class FakeTable:
    def __init__(self, rows: list[dict]) -> None:
        self.rows = rows

    def select(self, columns):
        return FakeRequest(self.rows, "select")

    def insert(self, payload):
        return FakeRequest(self.rows, "insert", payload)

    def update(self, payload):
        return FakeRequest(self.rows, "update", payload)

    def delete(self):
        return FakeRequest(self.rows, "delete")


class FakeSupabase:
    def __init__(self) -> None:
        self.tables: dict[str, list[dict]] = {}
        self.rpc_result = None

    def table(self, name):
        return FakeTable(self.tables.setdefault(name, []))

    def rpc(self, name, params):
        result = self.rpc_result

        def execute():
            if isinstance(result, Exception):
                raise result
            return SimpleNamespace(data=result)

        return SimpleNamespace(execute=execute)


@pytest.fixture
def fake():
    return FakeSupabase()


@pytest.fixture
def supabase_client(fake):
    return SupabaseDataClient(fake)


def test_supabase_repository_roundtrip(supabase_client, fake):
    sermons = RemoteRepository(SERMONS, supabase_client)

    created = sermons.create({"title": "La Fe", "speaker": "Ana", "sermon_date": date(2024, 3, 3)})
    updated = sermons.update(created.id, {"series": "Hebreos"})

    stored = fake.tables["sermons"][0]
    assert stored["sermon_date"] == "2024-03-03"
    assert isinstance(stored["created_at"], str)
    assert updated.version == 2
    assert [s.series for s in sermons.list()] == ["Hebreos"]


def test_supabase_stale_update(supabase_client, fake):
    fake.tables["sermon_categories"] = [_category(version=2)]

    with pytest.raises(ConflictError) as exc:
        supabase_client.update("sermon_categories", "c1", {"name": "x"}, expected_version=1)

    assert exc.value.code == ErrorCode.STALE_VERSION.value
    assert supabase_client.update("sermon_categories", "gone", {"name": "x"}, expected_version=1) is None


def test_supabase_rpc_event_full(supabase_client, fake):
    fake.rpc_result = APIError({"message": "EVENT_FULL", "code": "P0001", "hint": None, "details": None})

    with pytest.raises(ConflictError) as exc:
        supabase_client.register_attendance("e1", {"guests": 2})

    assert exc.value.code == ErrorCode.EVENT_FULL.value


def test_supabase_rpc_success_publishes(supabase_client, fake):
    fake.rpc_result = {
        "registration": {"id": "r1", "event_id": "e1", "guests": 2},
        "event": {"id": "e1", "current_attendees": 2},
    }
    seen = []
    supabase_client.subscribe("events", seen.append)

    registration, event = supabase_client.register_attendance("e1", {"guests": 2})

    assert registration["id"] == "r1"
    assert event["current_attendees"] == 2
    assert [p.event_type for p in seen] == [ChangeType.UPDATE]


def test_supabase_network_error(supabase_client, fake):
    fake.rpc_result = httpx.ConnectError("connection refused")

    with pytest.raises(NetworkError):
        supabase_client.register_attendance("e1", {"guests": 1})


@pytest.mark.parametrize(
    ("code", "message", "error_cls", "error_code"),
    [
        ("PGRST116", "no rows", NotFoundError, ErrorCode.ENTITY_NOT_FOUND),
        ("23505", "duplicate key", ConflictError, ErrorCode.DUPLICATE_RECORD),
        ("23503", "foreign key", ValidationError, ErrorCode.VALIDATION_FAILED),
        ("P0002", "EVENT_NOT_FOUND", NotFoundError, ErrorCode.EVENT_NOT_FOUND),
        ("42P01", "relation missing", DatabaseError, ErrorCode.DATABASE_ERROR),
    ],
)
def test_api_error_mapping(code, message, error_cls, error_code):
    error = _map_api_error(
        APIError({"message": message, "code": code, "hint": None, "details": None}), "events", "query"
    )

    assert isinstance(error, error_cls)
    assert error.code == error_code.value
    assert error.context["pg_code"] == code


def test_supabase_requires_settings():
    with pytest.raises(ValueError):
        SupabaseDataClient.from_settings(url="", key="")


def test_supabase_query_pages_with_range(supabase_client, fake):
    fake.tables["sermon_categories"] = [
        _category(id=f"c{n}", slug=f"tema-{n}", display_order=n) for n in range(5)
    ]

    page = supabase_client.query("sermon_categories", order_by="display_order", limit=2, offset=2)
    first = supabase_client.query("sermon_categories", order_by="display_order", limit=2)

    assert [r["id"] for r in page] == ["c2", "c3"]
    assert [r["id"] for r in first] == ["c0", "c1"]
