import logging

import pytest

from app.core.errors import InvalidEntityType, NotFound
from app.models.catalog import Landmark, Spot
from app.models.common import EntityType
from app.models.image import Image
from app.services.gallery import entity_gallery
from app.services.image_repository import (
    delete_image,
    delete_images_for_entity,
    list_images,
    parse_entity_type,
)
from app.services.ingestion import ingest_file
from app.services.storage import local_path_for


def test_parse_entity_type() -> None:
    assert parse_entity_type("spot") is EntityType.SPOT
    assert parse_entity_type(" Landmark ") is EntityType.LANDMARK
    assert parse_entity_type(EntityType.SPOT) is EntityType.SPOT
    with pytest.raises(InvalidEntityType):
        parse_entity_type("business")
    with pytest.raises(InvalidEntityType):
        parse_entity_type(None)


def test_delete_removes_row_and_file(run_db, content_dir) -> None:
    async def scenario(db):
        row = await ingest_file(db, "spot", "s1", b"bytes", "a.jpg")
        path = local_path_for(row.url)
        assert path.exists()
        await delete_image(db, row.id)
        return path, await list_images(db, "spot", "s1")

    path, rows = run_db(scenario)

    assert not path.exists()
    assert rows == []


def test_delete_with_missing_file_still_removes_row(run_db, content_dir, caplog) -> None:
    async def scenario(db):
        row = await ingest_file(db, "spot", "s1", b"bytes", "a.jpg")
        local_path_for(row.url).unlink()
        await delete_image(db, row.id)
        return await list_images(db, "spot", "s1")

    with caplog.at_level(logging.WARNING, logger="app.services.image_repository"):
        rows = run_db(scenario)

    assert rows == []
    assert "already missing" in caplog.text


def test_delete_unexpected_unlink_error_is_logged_not_raised(run_db, content_dir, monkeypatch, caplog) -> None:
    from app.services import image_repository

    def _denied(url):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(image_repository, "unlink_blob", _denied)

    async def scenario(db):
        row = await ingest_file(db, "spot", "s1", b"bytes", "a.jpg")
        await delete_image(db, row.id)
        return await list_images(db, "spot", "s1")

    with caplog.at_level(logging.ERROR, logger="app.services.image_repository"):
        rows = run_db(scenario)

    assert rows == []
    assert "Failed to remove image file" in caplog.text


def test_delete_external_url_skips_filesystem(run_db, content_dir) -> None:
    async def scenario(db):
        row = Image(entity_type=EntityType.SPOT, entity_id="seed", url="https://images.example.com/x.jpg")
        db.add(row)
        await db.commit()
        await delete_image(db, row.id)
        return await list_images(db, "spot", "seed")

    assert run_db(scenario) == []


def test_delete_unknown_id_raises_not_found(run_db, content_dir) -> None:
    async def scenario(db):
        await delete_image(db, 12345)

    with pytest.raises(NotFound):
        run_db(scenario)


def test_list_images_orders_by_order_index(run_db, content_dir) -> None:
    async def scenario(db):
        db.add_all(
            [
                Image(entity_type=EntityType.SPOT, entity_id="s1", url="/seed/c.jpg", order_index=5),
                Image(entity_type=EntityType.SPOT, entity_id="s1", url="/seed/a.jpg", order_index=0),
                Image(entity_type=EntityType.SPOT, entity_id="s1", url="/seed/b.jpg", order_index=2),
                Image(entity_type=EntityType.LANDMARK, entity_id="s1", url="/seed/z.jpg", order_index=1),
            ]
        )
        await db.commit()
        return [row.url for row in await list_images(db, "spot", "s1")]

    assert run_db(scenario) == ["/seed/a.jpg", "/seed/b.jpg", "/seed/c.jpg"]


def test_entity_cascade_removes_only_that_entity(run_db, content_dir) -> None:
    async def scenario(db):
        await ingest_file(db, "spot", "s1", b"a", "a.jpg")
        await ingest_file(db, "spot", "s1", b"b", "b.jpg")
        await ingest_file(db, "spot", "s2", b"c", "c.jpg")
        removed = await delete_images_for_entity(db, "spot", "s1")
        await db.commit()
        return removed, await list_images(db, "spot", "s1"), await list_images(db, "spot", "s2")

    removed, gone, kept = run_db(scenario)

    assert removed == 2
    assert gone == []
    assert len(kept) == 1


def test_gallery_puts_primary_first(run_db, content_dir) -> None:
    async def scenario(db):
        a = await ingest_file(db, "landmark", "l1", b"a", "a.jpg")
        b = await ingest_file(db, "landmark", "l1", b"b", "b.jpg")
        c = await ingest_file(db, "landmark", "l1", b"c", "c.jpg", True)
        return [a.url, b.url, c.url], await entity_gallery(db, "landmark", "l1")

    (a, b, c), gallery = run_db(scenario)

    assert gallery.primary == c
    assert gallery.images == [c, a, b]


def test_gallery_falls_back_to_cached_main_image(run_db, content_dir) -> None:
    async def scenario(db):
        db.add(Spot(id="s1", name="Mercado Central", category="Market", image="/usercontent/images/cached.jpg"))
        db.add(Landmark(id="l1", title="Torres de Serranos", category="Gate", image=None))
        await db.commit()
        return await entity_gallery(db, "spot", "s1"), await entity_gallery(db, "landmark", "l1")

    spot_gallery, landmark_gallery = run_db(scenario)

    assert spot_gallery.primary == "/usercontent/images/cached.jpg"
    assert spot_gallery.images == ["/usercontent/images/cached.jpg"]
    assert landmark_gallery.primary is None
    assert landmark_gallery.images == []


def test_delete_unmanaged_local_url_is_not_reported_missing(run_db, content_dir, caplog) -> None:
    async def scenario(db):
        row = Image(entity_type=EntityType.SPOT, entity_id="s1", url="/usercontent/images/../secrets.jpg")
        db.add(row)
        await db.commit()
        await delete_image(db, row.id)
        return await list_images(db, "spot", "s1")

    with caplog.at_level(logging.WARNING, logger="app.services.image_repository"):
        rows = run_db(scenario)

    assert rows == []
    assert "not a managed file" in caplog.text
    assert "already missing" not in caplog.text
