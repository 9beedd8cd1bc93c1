from enum import Enum

from fastapi import APIRouter, Response

from refugio.api.deps import Registry
from refugio.api.errors import unwrap
from refugio.api.v1.schemas import CategoryCreate, CategoryUpdate
from refugio.auth.deps import StaffIdentity
from refugio.collections import QueryOptions
from refugio.schemas import Category
from refugio.stores import CategoryStore

router = APIRouter(prefix="/categories", tags=["categories"])


class CategoryKind(str, Enum):
    EVENT = "event"
    SERMON = "sermon"
    BLOG = "blog"


def _store(registry: Registry, kind: CategoryKind, options: QueryOptions | None = None) -> CategoryStore:
    return CategoryStore(registry.get(f"{kind.value}_categories"), options=options, autoload=False)


@router.get("/{kind}", response_model=list[Category])
def list_categories(kind: CategoryKind, registry: Registry, active: bool | None = None):
    with _store(registry, kind, QueryOptions(active=active)) as store:
        return unwrap(store.refresh())


@router.post("/{kind}", response_model=Category, status_code=201)
def create_category(kind: CategoryKind, payload: CategoryCreate, registry: Registry, identity: StaffIdentity):
    with _store(registry, kind) as store:
        return unwrap(store.create(payload.model_dump(exclude_unset=True), identity))


@router.patch("/{kind}/{category_id}", response_model=Category)
def update_category(
    kind: CategoryKind,
    category_id: str,
    payload: CategoryUpdate,
    registry: Registry,
    identity: StaffIdentity,
):
    with _store(registry, kind) as store:
        return unwrap(store.update(category_id, payload.model_dump(exclude_unset=True)))


@router.delete("/{kind}/{category_id}", status_code=204)
def delete_category(kind: CategoryKind, category_id: str, registry: Registry, identity: StaffIdentity):
    with _store(registry, kind) as store:
        unwrap(store.delete(category_id))
    return Response(status_code=204)
