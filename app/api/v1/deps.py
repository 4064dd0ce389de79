from __future__ import annotations

from datetime import datetime

from app.models.image import Image
from app.schemas.image import ImageOut


def as_iso(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.isoformat()


def image_out(row: Image) -> ImageOut:
    return ImageOut(
        id=row.id,
        entity_type=row.entity_type.value,
        entity_id=row.entity_id,
        url=row.url,
        is_primary=row.is_primary,
        order_index=row.order_index,
        created_at=as_iso(row.created_at),
    )
