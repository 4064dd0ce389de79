from __future__ import annotations

from pydantic import BaseModel, Field


class ImageOut(BaseModel):
    id: int
    entity_type: str
    entity_id: str
    url: str
    is_primary: bool
    order_index: int
    created_at: str


class ImagePatch(BaseModel):
    is_primary: bool | None = None


class GalleryOut(BaseModel):
    primary: str | None = None
    images: list[str] = Field(default_factory=list)


class ReconcileOut(BaseModel):
    kept: int
    deleted: int
    errors: int
    skipped: int = 0
