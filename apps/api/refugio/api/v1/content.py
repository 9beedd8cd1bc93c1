"""CRUD routes for the content collections.

Sermons, blog posts and ministries share the same shape of endpoints, so
the routers are built from one function.
"""
from typing import Annotated

from fastapi import APIRouter, Header, Query, Response
from pydantic import BaseModel

from refugio.api.deps import Registry
from refugio.api.errors import service_errors, slug_not_found, unwrap
from refugio.api.v1.schemas import (
    BlogPostCreate,
    BlogPostUpdate,
    MinistryCreate,
    MinistryUpdate,
    SermonCreate,
    SermonUpdate,
)
from refugio.auth.deps import StaffIdentity
from refugio.collections import QueryOptions
from refugio.schemas import BlogPost, Ministry, Sermon
from refugio.stores import BlogPostStore, EntityStore, MinistryStore, SermonStore
from refugio.stores.content import ViewCountMixin


def build_router(
    collection: str,
    prefix: str,
    store_cls: type[EntityStore],
    out_model: type[BaseModel],
    create_model: type[BaseModel],
    update_model: type[BaseModel],
) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[prefix.strip("/")])

    def store_for(registry: Registry, options: QueryOptions | None = None) -> EntityStore:
        return store_cls(registry.get(collection), options=options, autoload=False)

    @router.get("", response_model=list[out_model])
    def list_items(registry: Registry, options: Annotated[QueryOptions, Query()]):
        with store_for(registry, options) as store:
            return unwrap(store.refresh())

    @router.get("/slug/{slug}", response_model=out_model)
    def get_by_slug(slug: str, registry: Registry):
        with store_for(registry) as store:
            item = unwrap(store.get_by_slug(slug))
        if item is None:
            raise slug_not_found(collection, slug)
        return item

    @router.get("/{item_id}", response_model=out_model)
    def get_item(item_id: str, registry: Registry):
        with service_errors():
            return registry.get(collection).require(item_id)

    @router.post("", response_model=out_model, status_code=201)
    def create_item(payload: create_model, registry: Registry, identity: StaffIdentity):  # type: ignore[valid-type]
        with store_for(registry) as store:
            return unwrap(store.create(payload.model_dump(exclude_unset=True), identity))

    @router.patch("/{item_id}", response_model=out_model)
    def update_item(
        item_id: str,
        payload: update_model,  # type: ignore[valid-type]
        registry: Registry,
        identity: StaffIdentity,
        if_match: Annotated[int | None, Header()] = None,
    ):
        with store_for(registry) as store:
            return unwrap(
                store.update(item_id, payload.model_dump(exclude_unset=True), expected_version=if_match)
            )

    @router.delete("/{item_id}", status_code=204)
    def delete_item(item_id: str, registry: Registry, identity: StaffIdentity):
        with store_for(registry) as store:
            unwrap(store.delete(item_id))
        return Response(status_code=204)

    if issubclass(store_cls, ViewCountMixin):

        @router.post("/{item_id}/views", response_model=out_model)
        def record_view(item_id: str, registry: Registry):
            with store_for(registry) as store:
                return unwrap(store.increment_views(item_id))

    return router


sermons_router = build_router(
    "sermons", "/sermons", SermonStore, Sermon, SermonCreate, SermonUpdate
)
blog_posts_router = build_router(
    "blog_posts", "/blog-posts", BlogPostStore, BlogPost, BlogPostCreate, BlogPostUpdate
)
ministries_router = build_router(
    "ministries", "/ministries", MinistryStore, Ministry, MinistryCreate, MinistryUpdate
)
