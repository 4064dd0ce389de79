"""Single-primary-per-entity bookkeeping.

All mutations here run as one transaction per call: the entity's rows are locked, every
other primary is cleared, then the target is flagged, and only then is the session
committed. Writes that bypass these helpers are not policed.
"""
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.common import EntityType
from app.models.image import Image
from app.services.image_repository import clear_primary, get_image, lock_entity_images


def initial_primary(existing: list[Image], requested_primary: bool) -> bool:
    if not existing:
        return True
    return bool(requested_primary)


async def set_primary(db: AsyncSession, image_id: int) -> Image:
    target = await get_image(db, image_id)
    siblings = await lock_entity_images(db, target.entity_type, target.entity_id)
    primaries = [row.id for row in siblings if row.is_primary]
    if primaries != [target.id]:
        await clear_primary(db, target.entity_type, target.entity_id, except_id=target.id)
        target.is_primary = True
    await db.commit()
    await db.refresh(target)
    return target


async def unset_primary(db: AsyncSession, image_id: int) -> Image:
    # No other image is promoted; the entity may be left without a primary.
    target = await get_image(db, image_id)
    if target.is_primary:
        target.is_primary = False
        await db.commit()
        await db.refresh(target)
    return target


async def claim_primary_for_insert(
    db: AsyncSession,
    entity_type: EntityType,
    entity_id: str,
    existing: list[Image],
    requested_primary: bool,
) -> bool:
    """Decide the new row's flag and clear competing primaries inside the current transaction."""
    is_primary = initial_primary(existing, requested_primary)
    if is_primary and existing:
        await clear_primary(db, entity_type, entity_id)
    return is_primary
