from __future__ import annotations

from refugio.schemas import BlogPost, Category, Ministry, Sermon
from refugio.stores.base import EntityStore, OperationResult, T


class ViewCountMixin(EntityStore[T]):
    def increment_views(self, id: str) -> OperationResult[T]:
        def bump() -> T:
            current = self.repository.require(id)
            return self.repository.update(
                id,
                {"view_count": current.view_count + 1},
                expected_version=current.version,
            )

        return self._run("increment_views", bump, self._replace, track_error=False, id=id)


class SermonStore(ViewCountMixin[Sermon]):
    def series(self) -> list[str]:
        return sorted({s.series for s in self._items if s.series})


class BlogPostStore(ViewCountMixin[BlogPost]):
    """Blog posts are read a page at a time when ``limit`` is set.

    ``refresh`` loads the first page and ``load_more`` appends the next one
    until a short page says there is nothing left.
    """

    has_more: bool = True

    def _page_is_full(self, page: list[BlogPost]) -> bool:
        return self._options.limit is not None and len(page) >= self._options.limit

    def refresh(self) -> OperationResult[list[BlogPost]]:
        result = super().refresh()
        if result and not self._closed:
            self.has_more = self._page_is_full(result.data)
        return result

    def load_more(self) -> OperationResult[list[BlogPost]]:
        if not self.has_more or self.loading:
            return OperationResult.ok([])
        start = (self._options.offset or 0) + len(self._items)
        options = self._options.model_copy(update={"offset": start})
        generation = self._generation

        def commit(page: list[BlogPost]) -> None:
            if generation != self._generation:
                return
            known = {post.id for post in self._items}
            self._items = [*self._items, *(post for post in page if post.id not in known)]
            self.has_more = self._page_is_full(page)

        return self._run("load_more", lambda: self.repository.list(options), commit)


class MinistryStore(EntityStore[Ministry]):
    def active(self) -> list[Ministry]:
        return [m for m in self._items if m.is_active]


class CategoryStore(EntityStore[Category]):
    def names(self) -> dict[str, str]:
        return {c.id: c.name for c in self._items}
