from __future__ import annotations

import asyncio
import logging
import os
import secrets
import string
import tempfile
import time
from pathlib import Path
from urllib.parse import urlparse

from app.core.config import settings
from app.core.errors import InvalidFilename, NotFound, WriteFailure

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "jpg"
# The sweep also recognises svg so placeholder vector art is never mistaken for foreign data.
RECOGNIZED_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp", "svg"})

_TOKEN_ALPHABET = string.ascii_lowercase + string.digits

_MEDIA_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
}


def extension_of(name: str | None) -> str:
    base = str(name or "").strip().rsplit("/", 1)[-1]
    if "." not in base:
        return ""
    return base.rsplit(".", 1)[1].lower()


def pick_extension(suggested_name: str | None) -> str:
    ext = extension_of(suggested_name)
    return ext if ext in settings.allowed_extensions else DEFAULT_EXTENSION


def generate_filename(suggested_name: str | None) -> str:
    token = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(7))
    return f"{int(time.time() * 1000)}-{token}.{pick_extension(suggested_name)}"


def filename_from_url(source_url: str) -> str:
    segment = urlparse(source_url).path.rstrip("/").rsplit("/", 1)[-1]
    return segment or "image.jpg"


def ensure_content_dir() -> Path:
    root = settings.content_dir
    root.mkdir(parents=True, exist_ok=True)
    return root


def url_for(filename: str) -> str:
    return f"{settings.content_url_prefix}{filename}"


def is_local_url(url: str | None) -> bool:
    return bool(url) and str(url).startswith(settings.content_url_prefix)


def local_path_for(url: str) -> Path | None:
    """Map a stored ``/<content-root>/<filename>`` URL to its file, or None for foreign URLs."""
    if not is_local_url(url):
        return None
    filename = url[len(settings.content_url_prefix) :]
    if not filename or "/" in filename or "\\" in filename or ".." in filename:
        return None
    return settings.content_dir / filename


def media_type_for(filename: str) -> str:
    return _MEDIA_TYPES.get(extension_of(filename), "application/octet-stream")


def _write_durably(root: Path, filename: str, data: bytes) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=root, prefix=".upload-", suffix=".part")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, root / filename)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


async def write_blob(data: bytes, suggested_name: str | None) -> str:
    """Persist ``data`` under a generated name and return its local URL.

    The URL is only returned once the bytes are flushed and renamed into place, so a caller
    never registers a reference to a partially written file.
    """
    filename = generate_filename(suggested_name)
    try:
        root = ensure_content_dir()
        await asyncio.wait_for(
            asyncio.to_thread(_write_durably, root, filename, data),
            timeout=settings.write_timeout_seconds,
        )
    except asyncio.TimeoutError as exc:
        raise WriteFailure(f"Timed out writing {filename}") from exc
    except OSError as exc:
        raise WriteFailure(f"Failed to write {filename}: {exc.strerror or exc}") from exc

    logger.debug("Stored %d bytes as %s", len(data), filename)
    return url_for(filename)


def unlink_blob(url: str) -> bool:
    """Remove the file behind a local URL.

    Returns False when the URL is not local or the file is already gone. Other
    ``OSError`` subclasses propagate to the caller.
    """
    path = local_path_for(url)
    if path is None:
        return False
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


def read_blob(filename: str) -> tuple[bytes, str]:
    if not filename or "/" in filename or "\\" in filename or ".." in filename:
        raise InvalidFilename("Invalid file path")
    path = settings.content_dir / filename
    try:
        body = path.read_bytes()
    except (FileNotFoundError, IsADirectoryError) as exc:
        raise NotFound("File not found") from exc
    return body, media_type_for(filename)
