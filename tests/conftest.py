from __future__ import annotations

import asyncio
import os
from pathlib import Path

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./.pytest-media-store.db")

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from app.core.config import settings  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.models import *  # noqa: E402,F401,F403


@pytest.fixture
def content_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setattr(settings, "media_base_dir", str(tmp_path / "media"))
    monkeypatch.setattr(settings, "content_root", "usercontent/images")
    return settings.content_dir


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    url = f"sqlite+aiosqlite:///{tmp_path / 'store.db'}"

    async def _create() -> None:
        engine = create_async_engine(url, poolclass=NullPool)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()

    asyncio.run(_create())
    return url


@pytest.fixture
def session_factory(db_url: str):
    engine = create_async_engine(db_url, poolclass=NullPool)
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
def run_db(db_url: str):
    """Run ``scenario(db)`` to completion on a fresh session against the test database."""

    def _run(scenario):
        async def _main():
            engine = create_async_engine(db_url, poolclass=NullPool)
            maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
            try:
                async with maker() as db:
                    return await scenario(db)
            finally:
                await engine.dispose()

        return asyncio.run(_main())

    return _run


@pytest.fixture
def stored_files(content_dir: Path):
    def _list() -> list[str]:
        if not content_dir.is_dir():
            return []
        return sorted(p.name for p in content_dir.iterdir() if p.is_file())

    return _list
