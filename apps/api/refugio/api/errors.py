from contextlib import contextmanager
from typing import Iterator, TypeVar

from fastapi import HTTPException

from refugio.services.error_codes import ErrorCode
from refugio.services.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ErrorInfo,
    NetworkError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from refugio.stores.base import OperationResult

D = TypeVar("D")

_STATUS_BY_TYPE: tuple[tuple[type[ServiceError], int], ...] = (
    (NotFoundError, 404),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (ConflictError, 409),
    (ValidationError, 422),
    (NetworkError, 503),
)

_STATUS_BY_CODE: dict[str, int] = {
    ErrorCode.VALIDATION_FAILED.value: 422,
    ErrorCode.UNSUPPORTED_FILTER.value: 422,
    ErrorCode.AUTH_REQUIRED.value: 401,
    ErrorCode.FORBIDDEN.value: 403,
    ErrorCode.ENTITY_NOT_FOUND.value: 404,
    ErrorCode.EVENT_NOT_FOUND.value: 404,
    ErrorCode.COMMENT_NOT_FOUND.value: 404,
    ErrorCode.REGISTRATION_NOT_FOUND.value: 404,
    ErrorCode.SLUG_TAKEN.value: 409,
    ErrorCode.STALE_VERSION.value: 409,
    ErrorCode.EVENT_FULL.value: 409,
    ErrorCode.DUPLICATE_RECORD.value: 409,
    ErrorCode.NETWORK_ERROR.value: 503,
}


def _detail(info: ErrorInfo) -> dict:
    detail = {"code": info.code, "message": info.message}
    if "fields" in info.context:
        detail["fields"] = info.context["fields"]
    return detail


def http_error_from_service(err: ServiceError) -> HTTPException:
    status = next((s for cls, s in _STATUS_BY_TYPE if isinstance(err, cls)), 500)
    headers = {"WWW-Authenticate": "Bearer"} if status == 401 else None
    return HTTPException(status_code=status, detail=_detail(err.to_info()), headers=headers)


def http_error_from_info(info: ErrorInfo) -> HTTPException:
    status = _STATUS_BY_CODE.get(info.code, 500)
    headers = {"WWW-Authenticate": "Bearer"} if status == 401 else None
    return HTTPException(status_code=status, detail=_detail(info), headers=headers)


def unwrap(result: OperationResult[D]) -> D:
    if result.error is not None:
        raise http_error_from_info(result.error)
    return result.data


@contextmanager
def service_errors() -> Iterator[None]:
    """Turn a ServiceError raised inside the block into an HTTPException."""
    try:
        yield
    except ServiceError as err:
        raise http_error_from_service(err) from err


def slug_not_found(kind: str, slug: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"code": ErrorCode.ENTITY_NOT_FOUND.value, "message": f"no {kind} with slug {slug!r}"},
    )
