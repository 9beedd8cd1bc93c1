from enum import Enum


class ErrorCode(str, Enum):
    VALIDATION_FAILED = "VALIDATION_FAILED"
    UNSUPPORTED_FILTER = "UNSUPPORTED_FILTER"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    FORBIDDEN = "FORBIDDEN"

    ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    COMMENT_NOT_FOUND = "COMMENT_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"

    SLUG_TAKEN = "SLUG_TAKEN"
    STALE_VERSION = "STALE_VERSION"
    EVENT_FULL = "EVENT_FULL"
    DUPLICATE_RECORD = "DUPLICATE_RECORD"

    DATABASE_ERROR = "DATABASE_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
