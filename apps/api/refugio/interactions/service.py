from __future__ import annotations

import threading
import uuid

import structlog

from refugio.auth.identity import (
    Identity,
    IdentityProvider,
    require_identity,
    require_role,
    static_identity,
)
from refugio.core.clock import touch, utcnow
from refugio.interactions.backends import CommentMap, InteractionBackend, LikeMap
from refugio.schemas.interactions import Comment, Like, Namespace
from refugio.schemas.profiles import STAFF_ROLES
from refugio.services.error_codes import ErrorCode
from refugio.services.exceptions import (
    AuthorizationError,
    ErrorInfo,
    NotFoundError,
    ServiceError,
    ValidationError,
)

logger = structlog.get_logger(__name__)


class InteractionService:
    """Likes and comments for one namespace, cached per entity id.

    Writes go to the backend first; the cache only changes once the backend
    accepted them.
    """

    def __init__(
        self,
        namespace: Namespace,
        backend: InteractionBackend,
        identity_provider: IdentityProvider | None = None,
        autoload: bool = True,
    ) -> None:
        self.namespace = namespace
        self.backend = backend
        self.identity_provider = identity_provider or static_identity(None)
        self.likes: LikeMap = {}
        self.comments: CommentMap = {}
        self.loading = False
        self.error: ErrorInfo | None = None
        self._lock = threading.RLock()
        if autoload:
            self.load()

    @property
    def identity(self) -> Identity | None:
        return self.identity_provider()

    def load(self) -> None:
        self.loading = True
        self.error = None
        try:
            likes, comments = self.backend.load(self.namespace)
        except ServiceError as exc:
            self.error = exc.to_info(namespace=self.namespace.value)
            logger.warning(
                "interactions_load_failed",
                namespace=self.namespace.value,
                code=exc.code,
                error=exc.message,
            )
            return
        finally:
            self.loading = False
        with self._lock:
            self.likes = likes
            self.comments = comments

    refresh = load

    # Likes

    def _own_like(self, entity_id: str, identity: Identity) -> Like | None:
        return next(
            (like for like in self.likes.get(entity_id, []) if identity.owns(like.user_id, like.user_email)),
            None,
        )

    def toggle_like(self, entity_id: str) -> bool:
        """Add or remove the caller's like; returns whether it is now liked."""
        identity = require_identity(self.identity, "like")
        with self._lock:
            existing = self._own_like(entity_id, identity)
            if existing is not None:
                self.backend.remove_like(self.namespace, existing)
                self.likes[entity_id] = [like for like in self.likes[entity_id] if like.id != existing.id]
                logger.info("like_removed", namespace=self.namespace.value, entity_id=entity_id)
                return False

            like = self.backend.add_like(
                self.namespace,
                Like(
                    id=str(uuid.uuid4()),
                    entity_id=entity_id,
                    user_id=identity.id,
                    user_email=identity.email,
                    user_name=identity.label,
                    created_at=utcnow(),
                ),
            )
            self.likes.setdefault(entity_id, []).append(like)
            logger.info("like_added", namespace=self.namespace.value, entity_id=entity_id)
            return True

    def has_user_liked(self, entity_id: str) -> bool:
        identity = self.identity
        return identity is not None and self._own_like(entity_id, identity) is not None

    def get_likes_count(self, entity_id: str) -> int:
        return len(self.likes.get(entity_id, []))

    # Comments

    def add_comment(self, entity_id: str, text: str) -> Comment:
        identity = require_identity(self.identity, "comment")
        content = text.strip()
        if not content:
            raise ValidationError(
                ErrorCode.VALIDATION_FAILED.value,
                "comment cannot be empty",
                {"fields": {"content": "required"}},
            )
        now = utcnow()
        comment = Comment(
            id=str(uuid.uuid4()),
            entity_id=entity_id,
            user_id=identity.id,
            user_email=identity.email,
            user_name=identity.label,
            content=content,
            is_approved=not self.namespace.requires_moderation,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            comment = self.backend.add_comment(self.namespace, comment)
            self.comments.setdefault(entity_id, []).append(comment)
        logger.info(
            "comment_added",
            namespace=self.namespace.value,
            entity_id=entity_id,
            approved=comment.is_approved,
        )
        return comment

    def find_comment(self, comment_id: str) -> Comment:
        for comments in self.comments.values():
            for comment in comments:
                if comment.id == comment_id:
                    return comment
        raise NotFoundError(
            ErrorCode.COMMENT_NOT_FOUND.value, "comment not found", {"comment_id": comment_id}
        )

    def delete_comment(self, comment_id: str) -> None:
        identity = require_identity(self.identity, "delete comments")
        with self._lock:
            comment = self.find_comment(comment_id)
            if not identity.owns(comment.user_id, comment.user_email):
                raise AuthorizationError(
                    ErrorCode.FORBIDDEN.value,
                    "only the author can delete this comment",
                    {"comment_id": comment_id},
                )
            self.backend.remove_comment(self.namespace, comment)
            self.comments[comment.entity_id] = [
                c for c in self.comments[comment.entity_id] if c.id != comment_id
            ]
        logger.info("comment_deleted", namespace=self.namespace.value, comment_id=comment_id)

    def approve_comment(self, comment_id: str) -> Comment:
        require_role(self.identity, STAFF_ROLES, "approve comments")
        with self._lock:
            comment = self.find_comment(comment_id)
            if comment.is_approved:
                return comment
            approved = self.backend.save_comment(
                self.namespace,
                comment.model_copy(update={"is_approved": True, "updated_at": touch(comment.updated_at)}),
            )
            self.comments[comment.entity_id] = [
                approved if c.id == comment_id else c for c in self.comments[comment.entity_id]
            ]
        logger.info("comment_approved", namespace=self.namespace.value, comment_id=comment_id)
        return approved

    def get_comments(self, entity_id: str, include_pending: bool = False) -> list[Comment]:
        """Approved comments, plus the caller's own pending ones.

        ``include_pending`` returns everything, for moderators.
        """
        comments = self.comments.get(entity_id, [])
        if include_pending:
            return list(comments)
        identity = self.identity
        return [
            c
            for c in comments
            if c.is_approved or (identity is not None and identity.owns(c.user_id, c.user_email))
        ]

    def get_comments_count(self, entity_id: str) -> int:
        return sum(1 for c in self.comments.get(entity_id, []) if c.is_approved)
