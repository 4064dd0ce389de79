from __future__ import annotations

from arq.connections import RedisSettings
from arq.cron import cron

from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import SessionLocal
from app.services.reconciler import reconcile


async def startup(ctx) -> None:
    configure_logging()


async def reconcile_images_job(ctx, dry_run: bool = False) -> dict:
    async with SessionLocal() as db:
        report = await reconcile(db, dry_run=dry_run)
    return report.summary()


def _cron_jobs() -> list:
    hour = int(settings.reconcile_cron_hour)
    if hour < 0:
        return []
    return [cron(reconcile_images_job, hour={hour % 24}, minute={0}, run_at_startup=False)]


class WorkerSettings:
    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    functions = [reconcile_images_job]
    cron_jobs = _cron_jobs()
    on_startup = startup
