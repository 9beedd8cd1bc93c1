from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict

from refugio.data.base import DataClient
from refugio.schemas.interactions import Comment, Like, Namespace
from refugio.storage.base import KeyValueStore
from refugio.services.error_codes import ErrorCode
from refugio.services.exceptions import NotFoundError
from refugio.storage.collection import JsonCollection

LikeMap = dict[str, list[Like]]
CommentMap = dict[str, list[Comment]]

TABLES = {
    Namespace.EVENT: "event_interactions",
    Namespace.BLOG_POST: "blog_interactions",
    Namespace.SERMON: "sermon_interactions",
}


class InteractionBackend(ABC):
    @abstractmethod
    def load(self, namespace: Namespace) -> tuple[LikeMap, CommentMap]:
        """Every like and comment in the namespace, grouped by entity id."""

    @abstractmethod
    def add_like(self, namespace: Namespace, like: Like) -> Like:
        """Persist a like."""

    @abstractmethod
    def remove_like(self, namespace: Namespace, like: Like) -> None:
        """Delete a like if present."""

    @abstractmethod
    def add_comment(self, namespace: Namespace, comment: Comment) -> Comment:
        """Persist a comment."""

    @abstractmethod
    def remove_comment(self, namespace: Namespace, comment: Comment) -> None:
        """Delete a comment if present."""

    @abstractmethod
    def save_comment(self, namespace: Namespace, comment: Comment) -> Comment:
        """Overwrite an existing comment."""


class LocalInteractionBackend(InteractionBackend):
    """Maps of entity id to records under ``{namespace}_likes`` / ``{namespace}_comments``.

    Each change rewrites the whole map for the namespace.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def _likes(self, namespace: Namespace) -> JsonCollection:
        return JsonCollection(self.store, f"{namespace.value}_likes", default_factory=dict)

    def _comments(self, namespace: Namespace) -> JsonCollection:
        return JsonCollection(self.store, f"{namespace.value}_comments", default_factory=dict)

    def load(self, namespace: Namespace) -> tuple[LikeMap, CommentMap]:
        likes = {
            entity_id: [Like.model_validate(r) for r in rows]
            for entity_id, rows in self._likes(namespace).read().items()
        }
        comments = {
            entity_id: [Comment.model_validate(r) for r in rows]
            for entity_id, rows in self._comments(namespace).read().items()
        }
        return likes, comments

    def add_like(self, namespace: Namespace, like: Like) -> Like:
        with self._likes(namespace).edit() as likes:
            likes.setdefault(like.entity_id, []).append(like.model_dump(mode="json"))
        return like

    def remove_like(self, namespace: Namespace, like: Like) -> None:
        with self._likes(namespace).edit() as likes:
            rows = likes.get(like.entity_id, [])
            likes[like.entity_id] = [r for r in rows if r.get("id") != like.id]

    def add_comment(self, namespace: Namespace, comment: Comment) -> Comment:
        with self._comments(namespace).edit() as comments:
            comments.setdefault(comment.entity_id, []).append(comment.model_dump(mode="json"))
        return comment

    def remove_comment(self, namespace: Namespace, comment: Comment) -> None:
        with self._comments(namespace).edit() as comments:
            rows = comments.get(comment.entity_id, [])
            comments[comment.entity_id] = [r for r in rows if r.get("id") != comment.id]

    def save_comment(self, namespace: Namespace, comment: Comment) -> Comment:
        stored = comment.model_dump(mode="json")
        with self._comments(namespace).edit() as comments:
            rows = comments.get(comment.entity_id, [])
            comments[comment.entity_id] = [stored if r.get("id") == comment.id else r for r in rows]
        return comment


class RemoteInteractionBackend(InteractionBackend):
    """Rows in the ``*_interactions`` tables, told apart by ``type``."""

    def __init__(self, client: DataClient) -> None:
        self.client = client

    def load(self, namespace: Namespace) -> tuple[LikeMap, CommentMap]:
        likes: LikeMap = defaultdict(list)
        comments: CommentMap = defaultdict(list)
        for row in self.client.query(TABLES[namespace], order_by="created_at"):
            if row.get("type") == "like":
                likes[row["entity_id"]].append(Like.model_validate(row))
            elif row.get("type") == "comment":
                comments[row["entity_id"]].append(Comment.model_validate(row))
        return dict(likes), dict(comments)

    def add_like(self, namespace: Namespace, like: Like) -> Like:
        row = self.client.insert(TABLES[namespace], {**like.model_dump(), "type": "like"})
        return Like.model_validate(row)

    def remove_like(self, namespace: Namespace, like: Like) -> None:
        self.client.delete(TABLES[namespace], like.id)

    def add_comment(self, namespace: Namespace, comment: Comment) -> Comment:
        row = self.client.insert(TABLES[namespace], {**comment.model_dump(), "type": "comment"})
        return Comment.model_validate(row)

    def remove_comment(self, namespace: Namespace, comment: Comment) -> None:
        self.client.delete(TABLES[namespace], comment.id)

    def save_comment(self, namespace: Namespace, comment: Comment) -> Comment:
        patch = comment.model_dump(include={"content", "is_approved", "updated_at"})
        row = self.client.update(TABLES[namespace], comment.id, patch)
        if row is None:
            raise NotFoundError(
                ErrorCode.COMMENT_NOT_FOUND.value, "comment not found", {"comment_id": comment.id}
            )
        return Comment.model_validate(row)
