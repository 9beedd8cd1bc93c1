from fastapi import APIRouter, HTTPException, Response

from refugio.api.deps import Registry
from refugio.api.errors import http_error_from_info, service_errors
from refugio.api.v1.schemas import CommentIn, InteractionSummary, LikeOut
from refugio.auth.deps import OptionalIdentity
from refugio.auth.identity import Identity, has_role, static_identity
from refugio.interactions import InteractionService
from refugio.schemas import Comment, Namespace
from refugio.schemas.profiles import STAFF_ROLES

router = APIRouter(prefix="/interactions", tags=["interactions"])


def _service(namespace: Namespace, registry: Registry, identity: Identity | None) -> InteractionService:
    service = InteractionService(
        namespace,
        registry.interaction_backend(),
        static_identity(identity),
    )
    if service.error is not None:
        raise http_error_from_info(service.error)
    return service


def _summary(service: InteractionService, entity_id: str, include_pending: bool) -> InteractionSummary:
    return InteractionSummary(
        entity_id=entity_id,
        likes=service.get_likes_count(entity_id),
        comments_count=service.get_comments_count(entity_id),
        liked=service.has_user_liked(entity_id),
        comments=service.get_comments(entity_id, include_pending=include_pending),
    )


@router.get("/{namespace}/{entity_id}", response_model=InteractionSummary)
def get_interactions(
    namespace: Namespace,
    entity_id: str,
    registry: Registry,
    identity: OptionalIdentity,
    include_pending: bool = False,
):
    if include_pending and not has_role(identity, STAFF_ROLES):
        raise HTTPException(
            status_code=403,
            detail={"code": "FORBIDDEN", "message": "only moderators see pending comments"},
        )
    service = _service(namespace, registry, identity)
    return _summary(service, entity_id, include_pending)


@router.post("/{namespace}/{entity_id}/like", response_model=LikeOut)
def toggle_like(namespace: Namespace, entity_id: str, registry: Registry, identity: OptionalIdentity):
    service = _service(namespace, registry, identity)
    with service_errors():
        liked = service.toggle_like(entity_id)
    return LikeOut(liked=liked, likes=service.get_likes_count(entity_id))


@router.post("/{namespace}/{entity_id}/comments", response_model=Comment, status_code=201)
def add_comment(
    namespace: Namespace,
    entity_id: str,
    payload: CommentIn,
    registry: Registry,
    identity: OptionalIdentity,
):
    service = _service(namespace, registry, identity)
    with service_errors():
        return service.add_comment(entity_id, payload.content)


@router.delete("/{namespace}/{entity_id}/comments/{comment_id}", status_code=204)
def delete_comment(
    namespace: Namespace,
    entity_id: str,
    comment_id: str,
    registry: Registry,
    identity: OptionalIdentity,
):
    service = _service(namespace, registry, identity)
    with service_errors():
        service.delete_comment(comment_id)
    return Response(status_code=204)


@router.post("/{namespace}/{entity_id}/comments/{comment_id}/approve", response_model=Comment)
def approve_comment(
    namespace: Namespace,
    entity_id: str,
    comment_id: str,
    registry: Registry,
    identity: OptionalIdentity,
):
    service = _service(namespace, registry, identity)
    with service_errors():
        return service.approve_comment(comment_id)
