from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from refugio.models.base import Base, UTCDateTime, UUIDPrimaryKeyMixin, utcnow


class InteractionColumns(UUIDPrimaryKeyMixin):
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    # like/comment
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    user_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    user_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_approved: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)


class EventInteraction(Base, InteractionColumns):
    __tablename__ = "event_interactions"


class BlogInteraction(Base, InteractionColumns):
    __tablename__ = "blog_interactions"


class SermonInteraction(Base, InteractionColumns):
    __tablename__ = "sermon_interactions"
