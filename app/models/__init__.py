from app.models.catalog import Landmark, Spot
from app.models.common import EntityType
from app.models.image import Image, ImageEntityLock
from app.models.user import User

__all__ = [
    "EntityType",
    "Image",
    "ImageEntityLock",
    "Landmark",
    "Spot",
    "User",
]
