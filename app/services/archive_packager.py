"""
Archive Packager

Serialises a synthesized file tree into a deflate zip and keeps track of the
archives waiting in the downloads directory. An archive is downloadable once
and is deleted after it is sent, or by the expiry sweep.
"""

import logging
import re
import secrets
import time
from pathlib import Path
from typing import BinaryIO, Dict, Tuple, Union
from zipfile import ZIP_DEFLATED, ZipFile

from app.core.config import get_settings
from app.services.errors import ArchiveWriteError, DownloadFileNotFound

logger = logging.getLogger(__name__)

ARCHIVE_NAME_PATTERN = re.compile(r"^portfolio-\d+-[0-9a-f]+\.zip$")
PARTIAL_SUFFIX = ".part"
DELIVERING_SUFFIX = ".delivering"


def write_archive(file_tree: Dict[str, Union[str, bytes]], fileobj: BinaryIO) -> None:
    """Write every entry of the tree into a zip on a writable binary stream."""
    with ZipFile(fileobj, "w", compression=ZIP_DEFLATED, compresslevel=9) as archive:
        for path, content in file_tree.items():
            archive.writestr(path, content)


def pack(file_tree: Dict[str, Union[str, bytes]], output_path: Path) -> Path:
    """
    Write the archive to output_path.

    The zip is written to a sibling .part file and renamed into place only
    after both the archive and the file handle are closed, so a path that
    exists is always a complete archive.
    """
    output_path = Path(output_path)
    partial = output_path.with_name(output_path.name + PARTIAL_SUFFIX)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(partial, "wb") as handle:
            write_archive(file_tree, handle)
        partial.replace(output_path)
    except (OSError, ValueError, TypeError) as e:
        partial.unlink(missing_ok=True)
        raise ArchiveWriteError(f"Failed to write {output_path.name}: {e}") from e
    return output_path


class PortfolioArchiveStore:
    """Generated portfolio archives awaiting their one download."""

    def __init__(self, downloads_dir: Path):
        self.downloads_dir = Path(downloads_dir)

    @staticmethod
    def new_archive_name() -> str:
        return f"portfolio-{int(time.time() * 1000)}-{secrets.token_hex(6)}.zip"

    def create(self, file_tree: Dict[str, Union[str, bytes]]) -> Tuple[str, Path]:
        name = self.new_archive_name()
        path = pack(file_tree, self.downloads_dir / name)
        logger.info("Packed portfolio archive %s (%d files)", name, len(file_tree))
        return name, path

    def resolve(self, file_name: str) -> Path:
        """Path of a waiting archive; anything else is DownloadFileNotFound."""
        if not ARCHIVE_NAME_PATTERN.match(file_name or ""):
            raise DownloadFileNotFound(f"Invalid archive name: {file_name!r}")
        path = self.downloads_dir / file_name
        if not path.is_file():
            raise DownloadFileNotFound(f"Archive not found: {file_name}")
        return path

    def claim(self, file_name: str) -> Path:
        """
        Take a waiting archive for delivery.

        The rename succeeds for exactly one caller, so concurrent requests
        for the same name cannot both stream it.
        """
        path = self.resolve(file_name)
        delivering = path.with_name(path.name + DELIVERING_SUFFIX)
        try:
            path.rename(delivering)
        except FileNotFoundError as e:
            raise DownloadFileNotFound(f"Archive already delivered: {file_name}") from e
        return delivering

    def discard(self, path: Path) -> None:
        try:
            Path(path).unlink()
            logger.info("Deleted delivered archive %s", Path(path).name)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not delete archive %s: %s", path, e)

    def sweep_expired(self, max_age_seconds: float) -> int:
        """Delete archives (and abandoned .part/.delivering files) older than max_age_seconds."""
        if not self.downloads_dir.is_dir():
            return 0

        cutoff = time.time() - max_age_seconds
        removed = 0
        for candidate in self.downloads_dir.iterdir():
            is_archive = ARCHIVE_NAME_PATTERN.match(candidate.name)
            is_partial = candidate.name.endswith((".zip" + PARTIAL_SUFFIX, ".zip" + DELIVERING_SUFFIX))
            if not candidate.is_file() or not (is_archive or is_partial):
                continue
            try:
                if candidate.stat().st_mtime < cutoff:
                    candidate.unlink()
                    removed += 1
            except OSError as e:
                logger.warning("Could not remove expired archive %s: %s", candidate, e)

        if removed:
            logger.info("Removed %d expired portfolio archive(s)", removed)
        return removed


def get_archive_store() -> PortfolioArchiveStore:
    """FastAPI dependency - archive store bound to the configured downloads dir."""
    return PortfolioArchiveStore(get_settings().portfolio_downloads_dir)
