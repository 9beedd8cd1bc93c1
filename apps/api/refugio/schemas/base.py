from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from refugio.core.slugs import is_valid_slug


def ensure_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return value
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _unique(values: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        item = value.strip()
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out


class SchemaBase(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")


class Record(SchemaBase):
    """Columns every persisted row carries."""

    id: str
    created_at: datetime
    updated_at: datetime
    version: int = Field(default=1, ge=1)

    @field_validator(
        "created_at",
        "updated_at",
        "published_at",
        mode="after",
        check_fields=False,
    )
    @classmethod
    def _validate_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)


class SluggedRecord(Record):
    slug: str

    @field_validator("slug")
    @classmethod
    def _validate_slug(cls, value: str) -> str:
        if not is_valid_slug(value):
            raise ValueError("slug must be lowercase letters, digits and hyphens")
        return value


class TaggedMixin(BaseModel):
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return _unique(list(value))
