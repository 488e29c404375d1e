"""
Template Archive Installer

Turns an uploaded template zip into an installed, web-servable template:

1. Open the archive (central directory only, nothing extracted yet)
2. Locate manifest.json (archive root, or inside the lone top-level folder)
3. Validate the manifest
4. Check the declared entryFile is in the archive
5. Extract into a private staging directory (top-level folder stripped)
6. Re-validate the extracted manifest
7. Check the entry file exists on disk
8. Swap staging into templates/<id> and upsert the registry

Nothing becomes visible under the public templates root or in the
registry before step 8. Any failure removes the staging directory.
"""

import io
import logging
import shutil
import threading
import uuid
import zipfile
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Dict, Iterator, List, Optional, Tuple, Union

from app.core.config import get_settings
from app.schemas.schemas import TemplateManifest, TemplateRegistryEntry
from app.services.errors import (
    EntryFileMissing,
    EntryFileUnreachable,
    InvalidArchive,
    ManifestNotFound,
    ManifestValidationError,
    PostExtractionValidationFailed,
    UnsafeArchivePath,
)
from app.services.manifest_validator import validate_manifest, validate_manifest_file
from app.services.template_registry import TemplateRegistryStore

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"

# One lock per template id: concurrent re-uploads of the same id are
# serialised from extraction through the registry write. A lock lives only
# while some caller holds or waits for it.
_install_locks: Dict[str, threading.Lock] = {}
_install_lock_users: Dict[str, int] = {}
_install_locks_guard = threading.Lock()


@contextmanager
def _locked(template_id: str) -> Iterator[None]:
    with _install_locks_guard:
        lock = _install_locks.setdefault(template_id, threading.Lock())
        _install_lock_users[template_id] = _install_lock_users.get(template_id, 0) + 1
    try:
        with lock:
            yield
    finally:
        with _install_locks_guard:
            _install_lock_users[template_id] -= 1
            if not _install_lock_users[template_id]:
                del _install_lock_users[template_id]
                del _install_locks[template_id]


def _member_names(archive: zipfile.ZipFile) -> List[str]:
    return [info.filename for info in archive.infolist()]


def _check_member_paths(names: List[str]) -> None:
    for name in names:
        path = PurePosixPath(name.replace("\\", "/"))
        if path.is_absolute() or ".." in path.parts or (path.parts and ":" in path.parts[0]):
            raise UnsafeArchivePath(name)


def locate_manifest(names: List[str]) -> Tuple[str, str]:
    """
    Find manifest.json at the archive root or as the child of the lone
    top-level directory.

    Returns:
        (manifest member name, prefix) - prefix is "" or "<folder>/"
    """
    if MANIFEST_FILENAME in names:
        return MANIFEST_FILENAME, ""

    top_level = {name.split("/", 1)[0] for name in names if name}
    if len(top_level) == 1:
        folder = next(iter(top_level))
        candidate = f"{folder}/{MANIFEST_FILENAME}"
        if candidate in names:
            return candidate, f"{folder}/"

    raise ManifestNotFound()


def entry_file_in_archive(names: List[str], entry_file: str, prefix: str) -> bool:
    """Exact match (with or without the top-level prefix) or a path suffix match."""
    suffix = f"/{entry_file}"
    return any(
        name == entry_file or name == prefix + entry_file or name.endswith(suffix)
        for name in names
    )


class TemplateInstaller:
    """Installs and uninstalls template archives under the templates root."""

    def __init__(
        self,
        registry: TemplateRegistryStore,
        templates_dir: Path,
        staging_dir: Path
    ):
        self.registry = registry
        self.templates_dir = Path(templates_dir)
        self.staging_dir = Path(staging_dir)

    def template_dir(self, template_id: str) -> Path:
        return self.templates_dir / template_id

    # --------------------------------------------------------
    # Install
    # --------------------------------------------------------

    def inspect(self, archive_source: Union[Path, BinaryIO]) -> TemplateManifest:
        """Steps 1-4: validate an archive without writing anything."""
        with self._open(archive_source) as archive:
            manifest, _, _ = self._inspect_open(archive)
        return manifest

    def install(self, archive_source: Union[Path, BinaryIO]) -> TemplateRegistryEntry:
        with self._open(archive_source) as archive:
            manifest, names, prefix = self._inspect_open(archive)
            with _locked(manifest.id):
                staging = self._extract_to_staging(archive, names, prefix, manifest.id)
                try:
                    self._verify_staged(staging, manifest)
                    return self._activate(staging, manifest)
                finally:
                    if staging.exists():
                        shutil.rmtree(staging, ignore_errors=True)

    def install_bytes(self, archive_bytes: bytes) -> TemplateRegistryEntry:
        return self.install(io.BytesIO(archive_bytes))

    def _open(self, archive_source: Union[Path, BinaryIO]) -> zipfile.ZipFile:
        try:
            return zipfile.ZipFile(archive_source)
        except zipfile.BadZipFile as e:
            raise InvalidArchive(f"Uploaded file is not a valid zip archive: {e}") from e
        except OSError as e:
            raise InvalidArchive(f"Uploaded archive could not be opened: {e}") from e

    def _inspect_open(self, archive: zipfile.ZipFile) -> Tuple[TemplateManifest, List[str], str]:
        names = _member_names(archive)
        manifest_name, prefix = locate_manifest(names)
        manifest = validate_manifest(archive.read(manifest_name))

        if not entry_file_in_archive(names, manifest.entry_file, prefix):
            raise EntryFileMissing(manifest.entry_file)

        _check_member_paths(names)
        return manifest, names, prefix

    def _extract_to_staging(
        self,
        archive: zipfile.ZipFile,
        names: List[str],
        prefix: str,
        template_id: str
    ) -> Path:
        self.staging_dir.mkdir(parents=True, exist_ok=True)
        staging = self.staging_dir / f"{template_id}-{uuid.uuid4().hex}"
        staging.mkdir()
        try:
            for info in archive.infolist():
                relative = info.filename[len(prefix):] if prefix else info.filename
                if not relative or info.filename == prefix:
                    continue
                target = staging / relative
                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(info) as source, open(target, "wb") as dest:
                    shutil.copyfileobj(source, dest)
        except (zipfile.BadZipFile, OSError, RuntimeError) as e:
            shutil.rmtree(staging, ignore_errors=True)
            raise InvalidArchive(f"Failed to extract template archive: {e}") from e
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        return staging

    def _verify_staged(self, staging: Path, manifest: TemplateManifest) -> None:
        manifest_path = staging / MANIFEST_FILENAME
        try:
            extracted = validate_manifest_file(manifest_path)
        except ManifestValidationError as e:
            raise PostExtractionValidationFailed(
                f"Extracted manifest.json failed validation: {e.detail}"
            ) from e
        if extracted.id != manifest.id or extracted.entry_file != manifest.entry_file:
            raise PostExtractionValidationFailed(
                "Extracted manifest.json does not match the archive manifest"
            )
        if not (staging / manifest.entry_file).is_file():
            raise EntryFileUnreachable(manifest.entry_file)

    def _activate(self, staging: Path, manifest: TemplateManifest) -> TemplateRegistryEntry:
        target = self.template_dir(manifest.id)
        self.templates_dir.mkdir(parents=True, exist_ok=True)
        if target.exists():
            shutil.rmtree(target)
        shutil.move(str(staging), str(target))

        try:
            entry = self.registry.upsert(
                manifest,
                TemplateRegistryStore.public_path(manifest.id, MANIFEST_FILENAME),
                TemplateRegistryStore.public_path(manifest.id, manifest.entry_file),
            )
        except Exception:
            # files without a registry entry are unreachable for loaders
            shutil.rmtree(target, ignore_errors=True)
            raise
        logger.info("Installed template %s v%s into %s", manifest.id, manifest.version, target)
        return entry

    # --------------------------------------------------------
    # Uninstall
    # --------------------------------------------------------

    def uninstall(self, template_id: str) -> bool:
        """Remove the registry entry and the installed files."""
        with _locked(template_id):
            removed = self.registry.remove(template_id)
            target = self.template_dir(template_id)
            if target.is_dir() and target.resolve().parent == self.templates_dir.resolve():
                shutil.rmtree(target)
                removed = True
        if removed:
            logger.info("Uninstalled template %s", template_id)
        return removed


def get_template_installer(registry: Optional[TemplateRegistryStore] = None) -> TemplateInstaller:
    settings = get_settings()
    if registry is None:
        registry = TemplateRegistryStore(settings.registry_path, settings.templates_dir)
    return TemplateInstaller(registry, settings.templates_dir, settings.staging_dir)
