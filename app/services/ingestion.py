from __future__ import annotations

import logging

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import EmptyUpload, PayloadTooLarge
from app.models.common import EntityType
from app.models.image import Image
from app.services.image_repository import insert_image, lock_entity_images, next_order_index, parse_entity_type
from app.services.primary import claim_primary_for_insert
from app.services.remote import fetch_image_bytes
from app.services.storage import filename_from_url, unlink_blob, write_blob

logger = logging.getLogger(__name__)


async def _register(
    db: AsyncSession,
    *,
    entity_type: EntityType,
    entity_id: str,
    url: str,
    requested_primary: bool,
) -> Image:
    try:
        existing = await lock_entity_images(db, entity_type, entity_id)
        is_primary = await claim_primary_for_insert(db, entity_type, entity_id, existing, requested_primary)
        order_index = await next_order_index(db, entity_type, entity_id)
        row = await insert_image(
            db,
            entity_type=entity_type,
            entity_id=entity_id,
            url=url,
            is_primary=is_primary,
            order_index=order_index,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        # The row never landed, so the fresh file has no owner.
        try:
            unlink_blob(url)
        except OSError:
            logger.exception("Failed to discard unregistered image file %s", url)
        raise

    await db.refresh(row)
    logger.info(
        "Registered image id=%s for %s/%s (primary=%s, order=%s)",
        row.id,
        entity_type.value,
        entity_id,
        row.is_primary,
        row.order_index,
    )
    return row


async def ingest_file(
    db: AsyncSession,
    entity_type: EntityType | str,
    entity_id: str,
    data: bytes,
    original_name: str | None,
    requested_primary: bool = False,
) -> Image:
    kind = parse_entity_type(entity_type)
    if not data:
        raise EmptyUpload("Empty file")

    url = await write_blob(data, original_name)
    return await _register(
        db,
        entity_type=kind,
        entity_id=entity_id,
        url=url,
        requested_primary=requested_primary,
    )


async def ingest_url(
    db: AsyncSession,
    entity_type: EntityType | str,
    entity_id: str,
    source_url: str,
    requested_primary: bool = False,
    *,
    client: httpx.AsyncClient | None = None,
    max_bytes: int | None = None,
) -> Image:
    kind = parse_entity_type(entity_type)
    data = await fetch_image_bytes(source_url, client=client, max_bytes=max_bytes)
    if not data:
        raise EmptyUpload(f"Remote image at {source_url} is empty")
    if max_bytes is not None and len(data) > max_bytes:
        raise PayloadTooLarge(f"Remote image at {source_url} exceeds {max_bytes} bytes")

    url = await write_blob(data, filename_from_url(source_url))
    return await _register(
        db,
        entity_type=kind,
        entity_id=entity_id,
        url=url,
        requested_primary=requested_primary,
    )


async def localize_image_url(value: str | None, *, client: httpx.AsyncClient | None = None) -> str | None:
    """Bring a remote image into local storage for an entity's cached main image.

    Local paths and placeholder strings come back unchanged; no image row is created.
    """
    if not value:
        return value
    if value.startswith("/"):
        return value
    if value.lower().startswith(("http://", "https://")):
        data = await fetch_image_bytes(value, client=client)
        if not data:
            raise EmptyUpload(f"Remote image at {value} is empty")
        return await write_blob(data, filename_from_url(value))
    return value
