"""
Cleanup Service - expiry sweep for temporary files.

Removes, once they are older than PORTFOLIO_ARCHIVE_MAX_AGE_HOURS:
- generated portfolio archives that were never downloaded
- template uploads left behind by an interrupted request
- staging directories of interrupted installs

Runs once at startup and then every CLEANUP_INTERVAL_MINUTES.
"""

import asyncio
import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from app.core.config import Settings, get_settings
from app.services.archive_packager import PortfolioArchiveStore

logger = logging.getLogger(__name__)


@dataclass
class CleanupReport:
    archives: int = 0
    uploads: int = 0
    staging: int = 0

    @property
    def total(self) -> int:
        return self.archives + self.uploads + self.staging


def _remove_older_than(directory: Path, cutoff: float, pattern: str = "*") -> int:
    if not directory.is_dir():
        return 0
    removed = 0
    for candidate in directory.glob(pattern):
        try:
            if candidate.stat().st_mtime >= cutoff:
                continue
            if candidate.is_dir():
                shutil.rmtree(candidate)
            else:
                candidate.unlink()
            removed += 1
        except OSError as e:
            logger.warning("Cleanup could not remove %s: %s", candidate, e)
    return removed


def run_cleanup(settings: Optional[Settings] = None) -> CleanupReport:
    """One sweep over the downloads, uploads and staging directories."""
    settings = settings or get_settings()
    max_age = settings.portfolio_archive_max_age_hours * 3600
    cutoff = time.time() - max_age

    report = CleanupReport(
        archives=PortfolioArchiveStore(settings.portfolio_downloads_dir).sweep_expired(max_age),
        uploads=_remove_older_than(settings.template_uploads_dir, cutoff, "template-*.zip"),
        staging=_remove_older_than(settings.staging_dir, cutoff),
    )
    if report.total:
        logger.info(
            "Cleanup removed %d archive(s), %d upload(s), %d staging dir(s)",
            report.archives, report.uploads, report.staging
        )
    return report


async def cleanup_loop(settings: Optional[Settings] = None) -> None:
    """Sweep forever; a failing sweep is logged and retried next interval."""
    settings = settings or get_settings()
    interval = settings.cleanup_interval_minutes * 60
    while True:
        try:
            await asyncio.to_thread(run_cleanup, settings)
        except Exception:
            logger.exception("Cleanup sweep failed")
        await asyncio.sleep(interval)
