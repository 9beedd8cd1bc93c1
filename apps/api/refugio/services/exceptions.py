from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ErrorInfo:
    """Uniform error shape surfaced through a store's ``error`` field."""

    message: str
    code: str = "ERROR"
    context: dict[str, Any] = field(default_factory=dict)


class ServiceError(Exception):
    def __init__(
        self,
        code: str,
        message: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message or code
        self.context = dict(context or {})
        super().__init__(self.message)

    def to_info(self, **extra_context: Any) -> ErrorInfo:
        return ErrorInfo(
            message=self.message,
            code=self.code,
            context={**self.context, **extra_context},
        )


class ValidationError(ServiceError):
    pass


class AuthenticationError(ServiceError):
    pass


class AuthorizationError(ServiceError):
    pass


class NotFoundError(ServiceError):
    pass


class ConflictError(ServiceError):
    pass


class DatabaseError(ServiceError):
    pass


class NetworkError(ServiceError):
    pass
