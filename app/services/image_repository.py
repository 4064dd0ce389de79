from __future__ import annotations

import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidEntityType, NotFound
from app.models.common import EntityType
from app.models.image import Image, ImageEntityLock
from app.services.storage import is_local_url, local_path_for, unlink_blob

logger = logging.getLogger(__name__)


def parse_entity_type(value: EntityType | str | None) -> EntityType:
    if isinstance(value, EntityType):
        return value
    try:
        return EntityType(str(value or "").strip().lower())
    except ValueError as exc:
        raise InvalidEntityType(f"Unsupported entity type: {value!r}") from exc


def _entity_clause(entity_type: EntityType, entity_id: str):
    return (Image.entity_type == entity_type) & (Image.entity_id == entity_id)


async def get_image(db: AsyncSession, image_id: int) -> Image:
    row = (await db.execute(select(Image).where(Image.id == image_id))).scalar_one_or_none()
    if row is None:
        raise NotFound(f"Image {image_id} not found")
    return row


async def list_images(db: AsyncSession, entity_type: EntityType | str, entity_id: str) -> list[Image]:
    kind = parse_entity_type(entity_type)
    rows = await db.execute(
        select(Image).where(_entity_clause(kind, entity_id)).order_by(Image.order_index, Image.id)
    )
    return list(rows.scalars().all())


async def list_primary_images(db: AsyncSession, entity_type: EntityType | str, entity_id: str) -> list[Image]:
    kind = parse_entity_type(entity_type)
    rows = await db.execute(
        select(Image).where(_entity_clause(kind, entity_id), Image.is_primary.is_(True)).order_by(Image.id)
    )
    return list(rows.scalars().all())


async def lock_entity(db: AsyncSession, entity_type: EntityType, entity_id: str) -> None:
    """Serialise writers on one entity, including an entity with no image rows yet.

    The lock row is upserted first: on SQLite that write takes the database write lock, on
    PostgreSQL the follow-up ``FOR UPDATE`` holds the row until commit.
    """
    insert_for = pg_insert if db.get_bind().dialect.name == "postgresql" else sqlite_insert
    await db.execute(
        insert_for(ImageEntityLock)
        .values(entity_type=entity_type, entity_id=entity_id)
        .on_conflict_do_nothing()
    )
    await db.execute(
        select(ImageEntityLock.entity_id)
        .where(ImageEntityLock.entity_type == entity_type, ImageEntityLock.entity_id == entity_id)
        .with_for_update()
    )


async def lock_entity_images(db: AsyncSession, entity_type: EntityType, entity_id: str) -> list[Image]:
    """Take the entity lock, then load its rows so concurrent writers queue behind this transaction."""
    await lock_entity(db, entity_type, entity_id)
    rows = await db.execute(
        select(Image)
        .where(_entity_clause(entity_type, entity_id))
        .order_by(Image.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return list(rows.scalars().all())


async def next_order_index(db: AsyncSession, entity_type: EntityType, entity_id: str) -> int:
    current = (
        await db.execute(select(func.max(Image.order_index)).where(_entity_clause(entity_type, entity_id)))
    ).scalar_one_or_none()
    return 0 if current is None else int(current) + 1


async def clear_primary(
    db: AsyncSession,
    entity_type: EntityType,
    entity_id: str,
    *,
    except_id: int | None = None,
) -> None:
    stmt = update(Image).where(_entity_clause(entity_type, entity_id), Image.is_primary.is_(True))
    if except_id is not None:
        stmt = stmt.where(Image.id != except_id)
    await db.execute(stmt.values(is_primary=False).execution_options(synchronize_session="fetch"))


async def insert_image(
    db: AsyncSession,
    *,
    entity_type: EntityType,
    entity_id: str,
    url: str,
    is_primary: bool,
    order_index: int,
) -> Image:
    row = Image(
        entity_type=entity_type,
        entity_id=entity_id,
        url=url,
        is_primary=is_primary,
        order_index=order_index,
    )
    db.add(row)
    await db.flush()
    return row


async def delete_image(db: AsyncSession, image_id: int) -> None:
    row = await get_image(db, image_id)

    if is_local_url(row.url) and local_path_for(row.url) is None:
        logger.warning("Image id=%s url %s is not a managed file; leaving the filesystem alone", row.id, row.url)
    else:
        try:
            if not unlink_blob(row.url) and is_local_url(row.url):
                logger.warning("Image file for id=%s already missing: %s", row.id, row.url)
        except OSError:
            logger.exception("Failed to remove image file for id=%s: %s", row.id, row.url)

    await db.delete(row)
    await db.commit()


async def delete_images_for_entity(db: AsyncSession, entity_type: EntityType | str, entity_id: str) -> int:
    """Drop every image row for an entity inside the caller's transaction; files are left to the sweep."""
    kind = parse_entity_type(entity_type)
    result = await db.execute(delete(Image).where(_entity_clause(kind, entity_id)))
    return int(result.rowcount or 0)
