from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.catalog import Landmark, Spot
from app.models.common import EntityType
from app.services.image_repository import list_images, parse_entity_type

_ENTITY_MODELS = {
    EntityType.SPOT: Spot,
    EntityType.LANDMARK: Landmark,
}


@dataclass(slots=True)
class Gallery:
    primary: str | None
    images: list[str] = field(default_factory=list)


async def cached_main_image(db: AsyncSession, entity_type: EntityType, entity_id: str) -> str | None:
    model = _ENTITY_MODELS[entity_type]
    return (await db.execute(select(model.image).where(model.id == entity_id))).scalar_one_or_none()


async def entity_gallery(db: AsyncSession, entity_type: EntityType | str, entity_id: str) -> Gallery:
    """Primary image first, then the rest by order; falls back to the entity's cached image."""
    kind = parse_entity_type(entity_type)
    rows = await list_images(db, kind, entity_id)
    primary = next((row.url for row in rows if row.is_primary), None)
    if primary is None:
        primary = await cached_main_image(db, kind, entity_id)

    others = [row.url for row in rows if not row.is_primary]
    images = ([primary] if primary else []) + others
    return Gallery(primary=primary, images=images)
