from __future__ import annotations

import logging

import httpx

from app.core.config import settings
from app.core.errors import FetchFailure, PayloadTooLarge

logger = logging.getLogger(__name__)


def _headers() -> dict[str, str]:
    return {
        "Accept": "image/*,*/*;q=0.8",
        "User-Agent": "SpotMediaStore/1.0",
    }


async def _download(client: httpx.AsyncClient, url: str, max_bytes: int | None) -> bytes:
    async with client.stream("GET", url, headers=_headers()) as res:
        if not res.is_success:
            logger.warning("Fetching %s returned HTTP %s", url, res.status_code)
            raise FetchFailure(f"Failed to download image from {url}: HTTP {res.status_code} {res.reason_phrase}")

        declared = res.headers.get("content-length", "")
        if max_bytes is not None and declared.isdigit() and int(declared) > max_bytes:
            raise PayloadTooLarge(f"Remote image at {url} exceeds {max_bytes} bytes")

        chunks: list[bytes] = []
        received = 0
        async for chunk in res.aiter_bytes():
            received += len(chunk)
            if max_bytes is not None and received > max_bytes:
                logger.warning("Stopped fetching %s after %d bytes (limit %d)", url, received, max_bytes)
                raise PayloadTooLarge(f"Remote image at {url} exceeds {max_bytes} bytes")
            chunks.append(chunk)
    return b"".join(chunks)


async def fetch_image_bytes(
    source_url: str,
    *,
    client: httpx.AsyncClient | None = None,
    max_bytes: int | None = None,
) -> bytes:
    """Download ``source_url`` into memory, reading at most ``max_bytes``.

    Any transport error, timeout or non-2xx response becomes ``FetchFailure``; a body over
    the limit becomes ``PayloadTooLarge``. Nothing is written anywhere until the whole body
    has arrived.
    """
    url = str(source_url or "").strip()
    if not url.lower().startswith(("http://", "https://")):
        raise FetchFailure(f"Unsupported image URL: {url!r}")

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.fetch_timeout_seconds, follow_redirects=True) as own:
                return await _download(own, url, max_bytes)
        return await _download(client, url, max_bytes)
    except httpx.TimeoutException as exc:
        logger.warning("Timed out fetching %s", url)
        raise FetchFailure(f"Timed out downloading image from {url}") from exc
    except httpx.HTTPError as exc:
        logger.warning("Transfer error fetching %s: %s", url, exc)
        raise FetchFailure(f"Failed to download image from {url}: {exc}") from exc
