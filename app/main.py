from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from fastapi.staticfiles import StaticFiles
from prometheus_fastapi_instrumentator import Instrumentator

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.errors import MediaStoreError
from app.core.logging import configure_logging

logger = logging.getLogger(__name__)

configure_logging()

app = FastAPI(title=settings.app_name, default_response_class=ORJSONResponse, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.api_prefix)
# Stored URLs are /<content-root>/<filename>; serve them at that path as well.
app.mount(
    settings.content_url_prefix.rstrip("/"),
    StaticFiles(directory=str(settings.content_dir), check_dir=False),
    name="content",
)

Instrumentator().instrument(app).expose(app)


@app.exception_handler(MediaStoreError)
async def media_store_error_handler(request: Request, exc: MediaStoreError) -> ORJSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return ORJSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
