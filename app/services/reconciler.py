from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import ReconcileFileError
from app.models.catalog import Landmark, Spot
from app.models.image import Image
from app.models.user import User
from app.services.storage import RECOGNIZED_EXTENSIONS, extension_of, is_local_url, url_for

logger = logging.getLogger(__name__)

# Every column that may hold a local image URL. Add new ones here.
REFERENCE_COLUMNS = (
    Image.url,
    Spot.image,
    Landmark.image,
    User.image,
)


@dataclass(slots=True)
class ReconcileReport:
    kept: int = 0
    deleted: int = 0
    errors: int = 0
    skipped: int = 0
    orphans: list[str] = field(default_factory=list)

    def summary(self) -> dict[str, int]:
        data = asdict(self)
        data.pop("orphans")
        return data


async def referenced_urls(db: AsyncSession) -> set[str]:
    refs: set[str] = set()
    for column in REFERENCE_COLUMNS:
        values = (await db.execute(select(column).where(column.is_not(None)))).scalars().all()
        found = {value for value in values if is_local_url(value)}
        logger.debug("%s references %d local images", column, len(found))
        refs |= found
    return refs


def _remove(path: Path) -> bool:
    """Unlink an orphan; False when something else removed it first."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise ReconcileFileError(path.name, exc) from exc
    return True


async def reconcile(db: AsyncSession, *, dry_run: bool = False) -> ReconcileReport:
    """Delete image files in the content root that no tracked column references.

    Never writes to the database. Unrecognised files are skipped, and a failure on one
    file is counted without stopping the sweep.
    """
    report = ReconcileReport()
    refs = await referenced_urls(db)
    logger.info("Reconciling content root against %d referenced images", len(refs))

    root = settings.content_dir
    if not root.is_dir():
        logger.info("Content root %s does not exist; nothing to reconcile", root)
        return report

    for path in sorted(root.iterdir()):
        if not path.is_file() or extension_of(path.name) not in RECOGNIZED_EXTENSIONS:
            report.skipped += 1
            continue
        if url_for(path.name) in refs:
            report.kept += 1
            continue

        report.orphans.append(path.name)
        if dry_run:
            continue
        try:
            removed = _remove(path)
        except ReconcileFileError as exc:
            report.errors += 1
            logger.warning("%s", exc.detail)
            continue
        if removed:
            report.deleted += 1
        else:
            logger.info("Orphan %s vanished before it could be deleted", path.name)

    logger.info(
        "Reconcile finished: kept=%d deleted=%d errors=%d skipped=%d%s",
        report.kept,
        report.deleted,
        report.errors,
        report.skipped,
        " (dry run)" if dry_run else "",
    )
    return report
