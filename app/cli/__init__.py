"""Operator commands.

    python -m app.cli reconcile [--dry-run]
    python -m app.cli worker
"""
from __future__ import annotations

import asyncio

import click

from app.core.logging import configure_logging


async def _run_reconcile(dry_run: bool) -> dict:
    from app.db.session import SessionLocal, engine
    from app.services.reconciler import reconcile

    try:
        async with SessionLocal() as db:
            report = await reconcile(db, dry_run=dry_run)
    finally:
        await engine.dispose()
    return {"report": report.summary(), "orphans": report.orphans}


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL for this run.")
def cli(log_level: str | None) -> None:
    configure_logging(level=log_level)


@cli.command("reconcile")
@click.option("--dry-run", is_flag=True, help="List orphaned files without deleting them.")
def reconcile_command(dry_run: bool) -> None:
    """Delete image files that nothing in the database references."""
    result = asyncio.run(_run_reconcile(dry_run))
    report = result["report"]

    label = "Would delete" if dry_run else "Orphaned"
    for name in result["orphans"]:
        click.echo(f"  {label}: {name}")
    click.echo(
        f"kept={report['kept']} deleted={report['deleted']} "
        f"errors={report['errors']} skipped={report['skipped']}"
    )
    if report["errors"]:
        raise SystemExit(1)


@cli.command("worker")
def worker_command() -> None:
    """Run the arq worker that executes scheduled reconcile sweeps."""
    from arq.worker import run_worker

    from app.workers.arq_worker import WorkerSettings

    # arq expects a current event loop during worker init.
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    run_worker(WorkerSettings)
