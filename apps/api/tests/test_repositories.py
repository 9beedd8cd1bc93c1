from __future__ import annotations

from datetime import date, timedelta

import pytest

from refugio.collections import QueryOptions
from refugio.data.base import ChangeType
from refugio.repositories import RepositoryRegistry
from refugio.services.error_codes import ErrorCode
from refugio.services.exceptions import ConflictError, NotFoundError, ValidationError


def _event(title: str = "Culto de Oración", days: int = 7, **overrides):
    data = {
        "title": title,
        "description": "Una noche de oración",
        "event_date": date.today() + timedelta(days=days),
    }
    data.update(overrides)
    return data


def test_create_assigns_server_fields(registry: RepositoryRegistry):
    event = registry.events.create(_event(max_attendees=50))

    assert event.id
    assert event.version == 1
    assert event.created_at == event.updated_at
    assert event.current_attendees == 0
    assert event.slug == "culto-de-oracion"
    assert event.available_spots == 50


def test_create_ignores_caller_server_fields(registry: RepositoryRegistry):
    event = registry.events.create(
        _event(id="chosen-id", version=9, current_attendees=40, max_attendees=50)
    )

    assert event.id != "chosen-id"
    assert event.version == 1
    assert event.current_attendees == 0


def test_create_rejects_invalid_rows(registry: RepositoryRegistry):
    with pytest.raises(ValidationError) as exc:
        registry.events.create(_event(title=""))

    assert exc.value.code == ErrorCode.VALIDATION_FAILED.value
    assert "title" in exc.value.context["fields"]


def test_slug_must_be_unique(registry: RepositoryRegistry):
    registry.events.create(_event("Retiro"))

    with pytest.raises(ConflictError) as exc:
        registry.events.create(_event("Retiro", days=14))

    assert exc.value.code == ErrorCode.SLUG_TAKEN.value


def test_update_bumps_version_and_updated_at(registry: RepositoryRegistry):
    repo = registry.events
    created = repo.create(_event())

    first = repo.update(created.id, {"title": "Vigilia"})
    second = repo.update(created.id, {"description": "Toda la noche"})

    assert first.version == 2
    assert second.version == 3
    assert created.updated_at < first.updated_at < second.updated_at
    assert second.created_at == created.created_at
    assert second.title == "Vigilia"


def test_update_ignores_server_fields_in_patch(registry: RepositoryRegistry):
    repo = registry.events
    created = repo.create(_event())

    updated = repo.update(created.id, {"id": "other", "version": 40, "title": "Nuevo"})

    assert updated.id == created.id
    assert updated.version == 2


def test_update_with_stale_version_conflicts(registry: RepositoryRegistry):
    repo = registry.events
    created = repo.create(_event())
    repo.update(created.id, {"title": "Primero"})

    with pytest.raises(ConflictError) as exc:
        repo.update(created.id, {"title": "Segundo"}, expected_version=created.version)

    assert exc.value.code == ErrorCode.STALE_VERSION.value
    assert repo.require(created.id).title == "Primero"


def test_update_missing_row(registry: RepositoryRegistry):
    with pytest.raises(NotFoundError):
        registry.events.update("missing", {"title": "x"})


def test_publishing_sets_published_at(registry: RepositoryRegistry):
    posts = registry.get("blog_posts")
    post = posts.create({"title": "Bienvenidos", "content": "Hola"})
    assert post.published_at is None

    published = posts.update(post.id, {"is_published": True})

    assert published.published_at is not None


def test_delete_is_idempotent(registry: RepositoryRegistry):
    repo = registry.events
    created = repo.create(_event())

    repo.delete(created.id)
    repo.delete(created.id)

    assert repo.get(created.id) is None


def test_list_orders_and_filters(registry: RepositoryRegistry):
    repo = registry.events
    later = repo.create(_event("Conferencia", days=20, is_published=True, type="conference"))
    sooner = repo.create(_event("Estudio", days=2, is_published=True, type="study"))
    repo.create(_event("Borrador", days=5))

    assert [e.id for e in repo.list(QueryOptions(published=True))] == [sooner.id, later.id]
    assert [e.id for e in repo.list(QueryOptions(type="study"))] == [sooner.id]
    assert [e.title for e in repo.list(QueryOptions(search="confer"))] == ["Conferencia"]
    assert len(repo.list(QueryOptions(limit=2))) == 2


def test_date_range_filter(registry: RepositoryRegistry):
    repo = registry.events
    repo.create(_event("Pasado", days=-3))
    upcoming = repo.create(_event("Futuro", days=3))

    found = repo.list(QueryOptions(date_from=date.today()))

    assert [e.id for e in found] == [upcoming.id]


def test_unsupported_filter_is_rejected(registry: RepositoryRegistry):
    with pytest.raises(ValidationError) as exc:
        registry.events.list(QueryOptions(speaker="Pastor Juan"))

    assert exc.value.code == ErrorCode.UNSUPPORTED_FILTER.value


def test_get_by_slug(registry: RepositoryRegistry):
    sermons = registry.get("sermons")
    sermon = sermons.create(
        {"title": "La Gracia", "speaker": "Pastor Juan", "sermon_date": date.today()}
    )

    assert sermons.get_by_slug("la-gracia").id == sermon.id
    assert sermons.get_by_slug("nada") is None


def test_sermons_newest_first(registry: RepositoryRegistry):
    sermons = registry.get("sermons")
    old = sermons.create({"title": "Uno", "speaker": "Ana", "sermon_date": date(2024, 1, 7)})
    new = sermons.create({"title": "Dos", "speaker": "Ana", "sermon_date": date(2024, 2, 4)})

    assert [s.id for s in sermons.list()] == [new.id, old.id]


def test_writes_reach_the_change_feed(registry: RepositoryRegistry):
    seen = []
    registry.feed.subscribe("events", seen.append)

    created = registry.events.create(_event())
    registry.events.update(created.id, {"title": "Otro"})
    registry.events.delete(created.id)

    assert [p.event_type for p in seen] == [ChangeType.INSERT, ChangeType.UPDATE, ChangeType.DELETE]
    assert seen[1].old["title"] == "Culto de Oración"
    assert seen[2].record["id"] == created.id


def test_local_collections_are_seeded_once(kv_store):
    registry = RepositoryRegistry(backend="local", store=kv_store)

    events = registry.events.list()
    ministries = registry.get("ministries").list()

    assert len(events) == 2
    assert [m.display_order for m in ministries] == [1, 2]
    # A second repository over the same store sees the stored rows, not new seeds
    again = RepositoryRegistry(backend="local", store=kv_store)
    assert len(again.events.list()) == 2
