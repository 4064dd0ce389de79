from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.common import EntityType, utcnow


class Image(Base):
    __tablename__ = "images"
    __table_args__ = (
        Index("ix_images_entity", "entity_type", "entity_id"),
        Index("ix_images_entity_primary", "entity_type", "entity_id", "is_primary"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_type: Mapped[EntityType] = mapped_column(
        Enum(EntityType, name="image_entity_type", values_callable=lambda e: [x.value for x in e]),
        nullable=False,
    )
    entity_id: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class ImageEntityLock(Base):
    """One row per entity that has ever held images; writers lock it before touching ``images``."""

    __tablename__ = "image_entity_locks"

    entity_type: Mapped[EntityType] = mapped_column(
        Enum(EntityType, name="image_entity_type", values_callable=lambda e: [x.value for x in e]),
        primary_key=True,
    )
    entity_id: Mapped[str] = mapped_column(String(255), primary_key=True)
