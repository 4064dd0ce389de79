from pathlib import Path

from app.models.catalog import Landmark, Spot
from app.models.user import User
from app.services.ingestion import ingest_file
from app.services.reconciler import reconcile


def _drop(root: Path, name: str, data: bytes = b"x") -> Path:
    root.mkdir(parents=True, exist_ok=True)
    path = root / name
    path.write_bytes(data)
    return path


def test_unreferenced_file_is_deleted(run_db, content_dir, stored_files) -> None:
    async def scenario(db):
        row = await ingest_file(db, "spot", "s1", b"kept", "kept.jpg")
        _drop(content_dir, "1700000000000-orphan1.jpg")
        return row, await reconcile(db)

    row, report = run_db(scenario)

    assert report.deleted == 1
    assert report.kept == 1
    assert report.errors == 0
    assert stored_files() == [row.url.rsplit("/", 1)[1]]


def test_second_run_deletes_nothing(run_db, content_dir) -> None:
    async def scenario(db):
        await ingest_file(db, "spot", "s1", b"kept", "kept.jpg")
        _drop(content_dir, "orphan-a.png")
        _drop(content_dir, "orphan-b.webp")
        return await reconcile(db), await reconcile(db)

    first, second = run_db(scenario)

    assert first.deleted == 2
    assert second.deleted == 0
    assert second.kept == 1


def test_cached_entity_and_avatar_references_are_kept(run_db, content_dir, stored_files) -> None:
    async def scenario(db):
        _drop(content_dir, "spot-cover.jpg")
        _drop(content_dir, "landmark-cover.png")
        _drop(content_dir, "avatar.gif")
        db.add(Spot(id="s1", name="Horchateria", category="Cafe", image="/usercontent/images/spot-cover.jpg"))
        db.add(Landmark(id="l1", title="La Lonja", category="UNESCO", image="/usercontent/images/landmark-cover.png"))
        db.add(User(id="u1", name="Ana", email="ana@example.com", image="/usercontent/images/avatar.gif"))
        await db.commit()
        return await reconcile(db)

    report = run_db(scenario)

    assert report.deleted == 0
    assert report.kept == 3
    assert stored_files() == ["avatar.gif", "landmark-cover.png", "spot-cover.jpg"]


def test_non_image_files_are_left_alone(run_db, content_dir, stored_files) -> None:
    async def scenario(db):
        _drop(content_dir, "notes.txt")
        _drop(content_dir, ".upload-abc.part")
        _drop(content_dir, "README")
        (content_dir / "nested.jpg").mkdir()
        _drop(content_dir, "logo.svg")
        return await reconcile(db)

    report = run_db(scenario)

    assert report.deleted == 1
    assert report.skipped == 4
    assert stored_files() == [".upload-abc.part", "README", "notes.txt"]


def test_dry_run_reports_without_deleting(run_db, content_dir, stored_files) -> None:
    async def scenario(db):
        _drop(content_dir, "orphan.jpg")
        return await reconcile(db, dry_run=True)

    report = run_db(scenario)

    assert report.deleted == 0
    assert report.orphans == ["orphan.jpg"]
    assert stored_files() == ["orphan.jpg"]


def test_failures_are_counted_and_sweep_continues(run_db, content_dir, stored_files, monkeypatch) -> None:
    original_unlink = Path.unlink

    def _unlink(self, *args, **kwargs):
        if self.name == "locked.jpg":
            raise PermissionError(13, "Permission denied")
        return original_unlink(self, *args, **kwargs)

    async def scenario(db):
        _drop(content_dir, "a-orphan.jpg")
        _drop(content_dir, "locked.jpg")
        _drop(content_dir, "z-orphan.jpg")
        monkeypatch.setattr(Path, "unlink", _unlink)
        return await reconcile(db)

    report = run_db(scenario)

    assert report.errors == 1
    assert report.deleted == 2
    assert stored_files() == ["locked.jpg"]


def test_missing_content_root_is_a_noop(run_db, content_dir) -> None:
    report = run_db(reconcile)

    assert report.summary() == {"kept": 0, "deleted": 0, "errors": 0, "skipped": 0}


def test_orphan_removed_by_someone_else_is_not_counted(run_db, content_dir, stored_files, monkeypatch) -> None:
    original_unlink = Path.unlink

    def _unlink(self, *args, **kwargs):
        if self.name == "raced.jpg":
            original_unlink(self)
            raise FileNotFoundError(2, "No such file or directory")
        return original_unlink(self, *args, **kwargs)

    async def scenario(db):
        _drop(content_dir, "orphan.jpg")
        _drop(content_dir, "raced.jpg")
        monkeypatch.setattr(Path, "unlink", _unlink)
        return await reconcile(db)

    report = run_db(scenario)

    assert report.deleted == 1
    assert report.errors == 0
    assert report.orphans == ["orphan.jpg", "raced.jpg"]
    assert stored_files() == []
