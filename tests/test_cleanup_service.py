import asyncio
import os
import time

from app.services.archive_packager import PortfolioArchiveStore
from app.services.cleanup_service import cleanup_loop, run_cleanup


def _age(path, hours: float) -> None:
    then = time.time() - hours * 3600
    os.utime(path, (then, then))


def test_run_cleanup_removes_only_stale_files(settings) -> None:
    store = PortfolioArchiveStore(settings.portfolio_downloads_dir)
    _, stale_archive = store.create({"README.md": "old"})
    _, fresh_archive = store.create({"README.md": "new"})
    _age(stale_archive, 30)

    settings.template_uploads_dir.mkdir(parents=True, exist_ok=True)
    stale_upload = settings.template_uploads_dir / "template-1700000000000-1234.zip"
    stale_upload.write_bytes(b"zip")
    _age(stale_upload, 30)

    stale_staging = settings.staging_dir / "modern-minimal-abc"
    stale_staging.mkdir(parents=True)
    (stale_staging / "index.tsx").write_text("export {}")
    _age(stale_staging, 30)

    report = run_cleanup(settings)

    assert (report.archives, report.uploads, report.staging) == (1, 1, 1)
    assert report.total == 3
    assert not stale_archive.exists()
    assert fresh_archive.exists()
    assert not stale_upload.exists()
    assert not stale_staging.exists()


def test_run_cleanup_on_empty_layout(settings) -> None:
    assert run_cleanup(settings).total == 0


def test_cleanup_loop_survives_a_failing_sweep(settings, monkeypatch) -> None:
    calls = []

    def failing_sweep(_settings):
        calls.append(1)
        raise OSError("disk unavailable")

    async def stop_after_first_interval(_seconds):
        raise asyncio.CancelledError

    monkeypatch.setattr("app.services.cleanup_service.run_cleanup", failing_sweep)
    monkeypatch.setattr("app.services.cleanup_service.asyncio.sleep", stop_after_first_interval)

    try:
        asyncio.run(cleanup_loop(settings))
    except asyncio.CancelledError:
        pass

    assert calls == [1]
