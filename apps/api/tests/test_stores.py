from __future__ import annotations

import threading
from datetime import date, timedelta

import pydantic
import pytest

from refugio.collections import QueryOptions
from refugio.repositories import RepositoryRegistry
from refugio.services.error_codes import ErrorCode
from refugio.stores import BlogPostStore, CategoryStore, EventStore, MinistryStore, SermonStore


def _event(title: str, days: int = 3, **overrides):
    return {
        "title": title,
        "event_date": date.today() + timedelta(days=days),
        **overrides,
    }


def test_autoload_fills_items(registry: RepositoryRegistry):
    registry.events.create(_event("Culto"))

    store = EventStore(registry.events)

    assert [e.title for e in store.items] == ["Culto"]
    assert store.loading is False
    assert store.error is None
    assert store.last_refreshed is not None


def test_create_prepends_and_update_replaces(registry: RepositoryRegistry):
    store = EventStore(registry.events)
    first = store.create(_event("Primero")).data
    second = store.create(_event("Segundo")).data

    assert [e.id for e in store.items] == [second.id, first.id]

    result = store.update(first.id, {"title": "Primero editado"})

    assert result
    assert result.data.version == 2
    assert store.find(first.id).title == "Primero editado"


def test_update_uses_cached_version(registry: RepositoryRegistry):
    store = EventStore(registry.events)
    event = store.create(_event("Culto")).data
    # Someone else edits the row behind the store's back
    registry.events.update(event.id, {"title": "Cambiado"})

    result = store.update(event.id, {"title": "Mío"})

    assert not result
    assert result.error.code == ErrorCode.STALE_VERSION.value
    assert store.error.code == ErrorCode.STALE_VERSION.value
    assert store.find(event.id).title == "Culto"


def test_failed_operation_keeps_items(registry: RepositoryRegistry):
    store = EventStore(registry.events)
    store.create(_event("Culto"))
    before = store.items

    result = store.create(_event(""))

    assert result.error.code == ErrorCode.VALIDATION_FAILED.value
    assert store.items == before


def test_delete_removes_from_cache(registry: RepositoryRegistry):
    store = EventStore(registry.events)
    event = store.create(_event("Culto")).data

    assert store.delete(event.id)
    assert store.items == []
    # Deleting again is still fine
    assert store.delete(event.id)


def test_set_options_refetches(registry: RepositoryRegistry):
    registry.events.create(_event("Publicado", is_published=True))
    registry.events.create(_event("Borrador"))
    store = EventStore(registry.events)
    assert len(store.items) == 2

    store.set_options(published=True)

    assert [e.title for e in store.items] == ["Publicado"]
    assert store.options == QueryOptions(published=True)


def test_unsupported_option_sets_error(registry: RepositoryRegistry):
    store = EventStore(registry.events, options=QueryOptions(speaker="Ana"))

    assert store.items == []
    assert store.error.code == ErrorCode.UNSUPPORTED_FILTER.value


def test_get_by_slug_miss_is_not_an_error(registry: RepositoryRegistry):
    store = EventStore(registry.events)
    created = store.create(_event("Noche de Alabanza")).data

    missing = store.get_by_slug("no-existe")
    found = store.get_by_slug("noche-de-alabanza")

    assert missing.data is None
    assert missing.error is None
    assert store.error is None
    assert found.data.id == created.id


def test_unexpected_exception_is_wrapped(registry: RepositoryRegistry):
    store = EventStore(registry.events)
    store.create(_event("Culto"))

    def broken(options=None):
        raise RuntimeError("connection reset")

    registry.events.list = broken
    result = store.refresh()

    assert not result
    assert result.error.code == ErrorCode.DATABASE_ERROR.value
    assert result.error.message == "connection reset"
    assert result.error.context["operation"] == "refresh"
    assert store.error == result.error
    assert store.loading is False
    assert [e.title for e in store.items] == ["Culto"]


def test_loading_is_true_while_a_call_runs(registry: RepositoryRegistry):
    store = EventStore(registry.events, autoload=False)
    started = threading.Event()
    release = threading.Event()
    original = registry.events.list

    def slow_list(options=None):
        started.set()
        release.wait(5)
        return original(options)

    registry.events.list = slow_list
    worker = threading.Thread(target=store.refresh)
    worker.start()
    try:
        assert started.wait(5)
        assert store.loading is True
    finally:
        release.set()
        worker.join(5)

    assert store.loading is False


def test_closed_store_drops_late_results(registry: RepositoryRegistry):
    registry.events.create(_event("Culto"))
    store = EventStore(registry.events, autoload=False)
    original = registry.events.list

    def list_then_close(options=None):
        rows = original(options)
        store.close()
        return rows

    registry.events.list = list_then_close
    result = store.refresh()

    assert result
    assert store.closed
    assert store.items == []


def test_stale_refresh_does_not_overwrite_newer(registry: RepositoryRegistry):
    registry.events.create(_event("Publicado", is_published=True))
    registry.events.create(_event("Borrador"))
    store = EventStore(registry.events, autoload=False)
    original = registry.events.list
    calls = []

    def list_with_newer_refresh(options=None):
        calls.append(options)
        rows = original(options)
        if len(calls) == 1:
            # A newer fetch starts and finishes before this one returns
            store.set_options(published=True)
        return rows

    registry.events.list = list_with_newer_refresh
    store.refresh()

    assert [e.title for e in store.items] == ["Publicado"]


def test_upcoming_sorted_by_date_and_time(registry: RepositoryRegistry):
    store = EventStore(registry.events, autoload=False)
    store.create(_event("Tarde", days=1, start_time="18:00"))
    store.create(_event("Mañana", days=1, start_time="08:00"))
    store.create(_event("Pasado", days=-1))
    store.create(_event("Luego", days=4))

    assert [e.title for e in store.upcoming()] == ["Mañana", "Tarde", "Luego"]
    assert [e.title for e in store.upcoming(limit=1)] == ["Mañana"]


def test_sermon_views_and_series(registry: RepositoryRegistry):
    store = SermonStore(registry.get("sermons"), autoload=False)
    sermon = store.create(
        {"title": "Fe", "speaker": "Ana", "sermon_date": date.today(), "series": "Romanos"}
    ).data
    store.create({"title": "Amor", "speaker": "Ana", "sermon_date": date.today(), "series": "Juan"})

    viewed = store.increment_views(sermon.id)

    assert viewed.data.view_count == 1
    assert store.find(sermon.id).view_count == 1
    assert store.series() == ["Juan", "Romanos"]


def test_ministry_and_category_helpers(registry: RepositoryRegistry):
    ministries = MinistryStore(registry.get("ministries"), autoload=False)
    ministries.create({"name": "Jóvenes"})
    ministries.create({"name": "Coro", "is_active": False})
    categories = CategoryStore(registry.get("event_categories"), autoload=False)
    category = categories.create({"name": "Adoración"}).data

    assert [m.name for m in ministries.active()] == ["Jóvenes"]
    assert categories.names() == {category.id: "Adoración"}


def test_blog_posts_load_more_pages(registry: RepositoryRegistry):
    posts = registry.get("blog_posts")
    created = [posts.create({"title": f"Reflexión {n}", "content": "..."}).id for n in range(5)]
    store = BlogPostStore(posts, options=QueryOptions(limit=2))

    assert len(store.items) == 2
    assert store.has_more is True

    store.load_more()
    assert len(store.items) == 4
    assert store.has_more is True

    store.load_more()
    assert store.has_more is False
    assert sorted(p.id for p in store.items) == sorted(created)

    assert store.load_more().data == []
    assert len(store.items) == 5


def test_blog_posts_without_limit_load_everything(registry: RepositoryRegistry):
    posts = registry.get("blog_posts")
    posts.create({"title": "Bienvenidos", "content": "Hola"})

    store = BlogPostStore(posts)

    assert len(store.items) == 1
    assert store.has_more is False


def test_offset_requires_limit():
    with pytest.raises(pydantic.ValidationError):
        QueryOptions(offset=2)
