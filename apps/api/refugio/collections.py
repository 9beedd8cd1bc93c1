"""Entity kinds known to the data layer.

A ``Collection`` tells both repository backings everything they need about an
entity: where it lives (table name for the remote client, storage key for the
local store), which pydantic model validates its rows, how lists are ordered,
which counters the server owns and which filter options map onto which
columns.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Mapping

from pydantic import ConfigDict, Field, model_validator

from refugio.schemas import BlogPost, Category, Event, Ministry, Profile, Sermon
from refugio.schemas.base import Record, SchemaBase
from refugio.services.error_codes import ErrorCode
from refugio.services.exceptions import NotFoundError, ValidationError

FILTER_OPS = ("eq", "gte", "lte", "ilike")


@dataclass(frozen=True)
class Filter:
    column: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in FILTER_OPS:
            raise ValueError(f"unsupported filter op: {self.op}")

    def matches(self, row: Any) -> bool:
        actual = row.get(self.column) if isinstance(row, dict) else getattr(row, self.column, None)
        if self.op == "eq":
            return actual == self.value
        if actual is None:
            return False
        if self.op == "gte":
            return actual >= self.value
        if self.op == "lte":
            return actual <= self.value
        return str(self.value).lower() in str(actual).lower()


class QueryOptions(SchemaBase):
    model_config = ConfigDict(extra="forbid", frozen=True)

    published: bool | None = None
    featured: bool | None = None
    active: bool | None = None
    type: str | None = None
    category: str | None = None
    author: str | None = None
    speaker: str | None = None
    series: str | None = None
    target_age_group: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    search: str | None = None
    limit: int | None = Field(default=None, ge=1)
    offset: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _offset_needs_limit(self) -> "QueryOptions":
        if self.offset and self.limit is None:
            raise ValueError("offset requires limit")
        return self


@dataclass(frozen=True)
class Collection:
    name: str
    table: str
    storage_key: str
    model: type[Record]
    order_by: str = "created_at"
    descending: bool = False
    title_field: str = "title"
    counters: tuple[str, ...] = ()
    options: Mapping[str, str] = field(default_factory=dict)
    date_field: str | None = None
    date_is_timestamp: bool = False
    seeds: Callable[[], list[dict[str, Any]]] | None = None

    def filters_for(self, options: QueryOptions | None) -> list[Filter]:
        if options is None:
            return []
        values = options.model_dump(exclude_none=True)
        values.pop("limit", None)
        values.pop("offset", None)

        filters: list[Filter] = []
        for name, value in values.items():
            if name == "search":
                filters.append(Filter(self.title_field, "ilike", value))
            elif name in {"date_from", "date_to"} and self.date_field:
                filters.append(self._date_filter(name, value))
            elif name in self.options:
                filters.append(Filter(self.options[name], "eq", value))
            else:
                raise ValidationError(
                    ErrorCode.UNSUPPORTED_FILTER.value,
                    f"{self.name} cannot be filtered by {name}",
                    {"collection": self.name, "option": name},
                )
        return filters

    def _date_filter(self, name: str, value: date) -> Filter:
        op = "gte" if name == "date_from" else "lte"
        if self.date_is_timestamp:
            bound = time.min if op == "gte" else time.max
            value = datetime.combine(value, bound, tzinfo=timezone.utc)
        return Filter(self.date_field, op, value)

    def sort(self, rows: list[Record]) -> list[Record]:
        present = [r for r in rows if getattr(r, self.order_by, None) is not None]
        missing = [r for r in rows if getattr(r, self.order_by, None) is None]
        present.sort(key=lambda r: getattr(r, self.order_by), reverse=self.descending)
        # None sorts last in either direction
        return present + missing


def _next_weekday(weekday: int, today: date | None = None) -> date:
    today = today or date.today()
    return today + timedelta(days=(weekday - today.weekday()) % 7)


def _seed_events() -> list[dict[str, Any]]:
    return [
        {
            "title": "Servicio Dominical",
            "description": "Únete a nosotros para un tiempo de adoración, enseñanza y comunión.",
            "event_date": _next_weekday(6),
            "start_time": time(10, 0),
            "end_time": time(12, 0),
            "location_name": "Santuario Principal",
            "type": "service",
            "is_published": True,
        },
        {
            "title": "Estudio Bíblico Semanal",
            "description": "Profundiza en la Palabra de Dios con nuestro estudio bíblico.",
            "event_date": _next_weekday(2),
            "start_time": time(19, 0),
            "end_time": time(20, 30),
            "location_name": "Sala de Conferencias",
            "type": "study",
            "max_attendees": 50,
            "requires_rsvp": True,
            "is_published": True,
        },
    ]


def _seed_ministries() -> list[dict[str, Any]]:
    return [
        {
            "name": "Ministerio de Jóvenes",
            "description": "Un espacio para que los jóvenes crezcan en su fe y desarrollen liderazgo.",
            "leader_name": "Pastor de Jóvenes",
            "meeting_day": "Viernes",
            "meeting_time": "19:00",
            "meeting_location": "Sala de Jóvenes",
            "target_age_group": "youth",
            "display_order": 1,
        },
        {
            "name": "Ministerio de Niños",
            "description": "Enseñanza bíblica adaptada para los más pequeños de la congregación.",
            "leader_name": "Coordinadora de Niños",
            "meeting_day": "Domingo",
            "meeting_time": "10:00",
            "meeting_location": "Aula Infantil",
            "target_age_group": "children",
            "display_order": 2,
        },
    ]


_CONTENT_COUNTERS = ("view_count", "like_count", "comment_count")
_CATEGORY_OPTIONS = {"active": "is_active"}

EVENTS = Collection(
    name="events",
    table="events",
    storage_key="refugio_events",
    model=Event,
    order_by="event_date",
    counters=("current_attendees",),
    options={
        "published": "is_published",
        "featured": "is_featured",
        "type": "type",
        "category": "category_id",
    },
    date_field="event_date",
    seeds=_seed_events,
)

SERMONS = Collection(
    name="sermons",
    table="sermons",
    storage_key="refugio_sermons",
    model=Sermon,
    order_by="sermon_date",
    descending=True,
    counters=_CONTENT_COUNTERS,
    options={
        "published": "is_published",
        "featured": "is_featured",
        "category": "category_id",
        "speaker": "speaker",
        "series": "series",
    },
    date_field="sermon_date",
)

BLOG_POSTS = Collection(
    name="blog_posts",
    table="blog_posts",
    storage_key="refugio_blog_posts",
    model=BlogPost,
    descending=True,
    counters=_CONTENT_COUNTERS,
    options={
        "published": "is_published",
        "featured": "is_featured",
        "category": "category_id",
        "author": "author_id",
    },
    date_field="published_at",
    date_is_timestamp=True,
)

MINISTRIES = Collection(
    name="ministries",
    table="ministries",
    storage_key="refugio_ministries",
    model=Ministry,
    order_by="display_order",
    title_field="name",
    options={"active": "is_active", "target_age_group": "target_age_group"},
    seeds=_seed_ministries,
)

PROFILES = Collection(
    name="profiles",
    table="profiles",
    storage_key="refugio_profiles",
    model=Profile,
    title_field="email",
    options={"active": "is_active"},
)


def _category_collection(prefix: str) -> Collection:
    return Collection(
        name=f"{prefix}_categories",
        table=f"{prefix}_categories",
        storage_key=f"refugio_{prefix}_categories",
        model=Category,
        order_by="display_order",
        title_field="name",
        options=_CATEGORY_OPTIONS,
    )


EVENT_CATEGORIES = _category_collection("event")
SERMON_CATEGORIES = _category_collection("sermon")
BLOG_CATEGORIES = _category_collection("blog")

COLLECTIONS: dict[str, Collection] = {
    c.name: c
    for c in (
        EVENTS,
        SERMONS,
        BLOG_POSTS,
        MINISTRIES,
        PROFILES,
        EVENT_CATEGORIES,
        SERMON_CATEGORIES,
        BLOG_CATEGORIES,
    )
}


def get_collection(name: str) -> Collection:
    try:
        return COLLECTIONS[name]
    except KeyError:
        raise NotFoundError(ErrorCode.ENTITY_NOT_FOUND.value, f"unknown collection: {name}") from None
