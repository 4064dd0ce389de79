from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import image_out
from app.core.config import settings
from app.db.session import get_db
from app.schemas.common import MessageResponse
from app.schemas.image import GalleryOut, ImageOut, ImagePatch, ReconcileOut
from app.services.gallery import entity_gallery
from app.services.image_repository import delete_image, get_image, list_images
from app.services.ingestion import ingest_file, ingest_url
from app.services.primary import set_primary, unset_primary
from app.services.reconciler import reconcile
from app.services.storage import read_blob

router = APIRouter(prefix="/images", tags=["images"])


@router.get("", response_model=list[ImageOut])
async def get_images(
    entity_type: str = Query(...),
    entity_id: str = Query(...),
    db: AsyncSession = Depends(get_db),
) -> list[ImageOut]:
    rows = await list_images(db, entity_type, entity_id)
    return [image_out(row) for row in rows]


@router.get("/gallery", response_model=GalleryOut)
async def get_gallery(
    entity_type: str = Query(...),
    entity_id: str = Query(...),
    db: AsyncSession = Depends(get_db),
) -> GalleryOut:
    gallery = await entity_gallery(db, entity_type, entity_id)
    return GalleryOut(primary=gallery.primary, images=gallery.images)


@router.post("/upload", response_model=ImageOut)
async def upload_image(
    entity_type: str = Form(...),
    entity_id: str = Form(...),
    is_primary: bool = Form(False),
    url: str | None = Form(None),
    file: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_db),
) -> ImageOut:
    entity_id = entity_id.strip()
    if not entity_id or (file is None and not url):
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: entity_type, entity_id, and either url or file",
        )

    max_bytes = int(settings.max_upload_size_mb) * 1024 * 1024
    if file is not None:
        media_type = str(file.content_type or "")
        if media_type and not media_type.startswith("image/"):
            raise HTTPException(status_code=400, detail="File must be an image")
        data = await file.read()
        if len(data) > max_bytes:
            raise HTTPException(status_code=413, detail=f"File too large (max {settings.max_upload_size_mb} MB)")
        row = await ingest_file(db, entity_type, entity_id, data, file.filename, is_primary)
    else:
        row = await ingest_url(db, entity_type, entity_id, str(url).strip(), is_primary, max_bytes=max_bytes)
    return image_out(row)


@router.post("/reconcile", response_model=ReconcileOut)
async def reconcile_images(
    dry_run: bool = Query(False),
    db: AsyncSession = Depends(get_db),
) -> ReconcileOut:
    report = await reconcile(db, dry_run=dry_run)
    return ReconcileOut(**report.summary())


@router.get("/serve/{filename}")
async def serve_image(filename: str) -> Response:
    data, media_type = read_blob(filename)
    return Response(
        content=data,
        media_type=media_type,
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )


@router.patch("/{image_id}", response_model=ImageOut)
async def patch_image(
    image_id: int,
    payload: ImagePatch,
    db: AsyncSession = Depends(get_db),
) -> ImageOut:
    if payload.is_primary is True:
        row = await set_primary(db, image_id)
    elif payload.is_primary is False:
        row = await unset_primary(db, image_id)
    else:
        row = await get_image(db, image_id)
    return image_out(row)


@router.delete("/{image_id}", response_model=MessageResponse)
async def remove_image(
    image_id: int,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await delete_image(db, image_id)
    return MessageResponse(success=True, message=f"Image {image_id} deleted")
