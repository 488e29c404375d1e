"""
Template Registry - the JSON document listing installed templates.

Backing store: templates/registry.json under the public templates root.
{
    "version": "1.0.0",
    "lastUpdated": "...",
    "templates": [TemplateRegistryEntry, ...]
}

Every call re-reads the document (no cache across requests). All
read-modify-write operations run under one process-wide lock so
concurrent installs/removals cannot lose each other's updates.
"""

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from app.core.config import get_settings
from app.schemas.schemas import TemplateManifest, TemplateRegistry, TemplateRegistryEntry
from app.services.errors import RegistryCorrupted

logger = logging.getLogger(__name__)

REGISTRY_VERSION = "1.0.0"
PUBLIC_TEMPLATES_PREFIX = "/templates/"

_registry_lock = threading.RLock()


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _later_than(previous: str) -> str:
    """Current time, bumped past `previous` so updatedAt strictly increases."""
    now = datetime.now(timezone.utc)
    try:
        prev = datetime.fromisoformat(previous)
    except (TypeError, ValueError):
        return now.isoformat()
    if prev.tzinfo is None:
        prev = prev.replace(tzinfo=timezone.utc)
    if now <= prev:
        now = prev + timedelta(microseconds=1)
    return now.isoformat()


class TemplateRegistryStore:
    """Data-access component for registry.json."""

    def __init__(self, registry_path: Path, templates_dir: Optional[Path] = None):
        self.registry_path = Path(registry_path)
        self.templates_dir = Path(templates_dir) if templates_dir else self.registry_path.parent

    # --------------------------------------------------------
    # Document IO
    # --------------------------------------------------------

    def load(self) -> TemplateRegistry:
        """Read the registry; a missing file yields an empty registry."""
        if not self.registry_path.exists():
            return TemplateRegistry(version=REGISTRY_VERSION, last_updated=utc_now_iso(), templates=[])
        try:
            data = json.loads(self.registry_path.read_text(encoding="utf-8"))
            return TemplateRegistry.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise RegistryCorrupted(f"registry.json is invalid: {e}") from e

    def save(self, registry: TemplateRegistry) -> None:
        """Stamp lastUpdated and atomically replace the document."""
        registry.last_updated = utc_now_iso()
        self.registry_path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(registry.model_dump(by_alias=True), ensure_ascii=False, indent=2) + "\n"

        fd, tmp_name = tempfile.mkstemp(
            prefix=".registry-", suffix=".json", dir=str(self.registry_path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.registry_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # --------------------------------------------------------
    # Mutations
    # --------------------------------------------------------

    def upsert(
        self,
        manifest: TemplateManifest,
        manifest_path: str,
        entry_path: str
    ) -> TemplateRegistryEntry:
        """
        Add or replace the entry for manifest.id.

        A replaced entry keeps its original uploadedAt; every upsert
        leaves the template active.
        """
        with _registry_lock:
            registry = self.load()
            existing_index = next(
                (i for i, t in enumerate(registry.templates) if t.id == manifest.id), None
            )
            existing = registry.templates[existing_index] if existing_index is not None else None

            now = utc_now_iso()
            entry = TemplateRegistryEntry(
                id=manifest.id,
                name=manifest.name,
                version=manifest.version,
                description=manifest.description,
                category=manifest.category,
                thumbnail=manifest.thumbnail,
                manifest_path=manifest_path,
                entry_path=entry_path,
                features=list(manifest.features),
                is_premium=manifest.is_premium,
                is_active=True,
                uploaded_at=existing.uploaded_at if existing else now,
                updated_at=_later_than(existing.updated_at) if existing else now,
            )

            if existing_index is not None:
                registry.templates[existing_index] = entry
            else:
                registry.templates.append(entry)

            self.save(registry)

        logger.info("Registry %s template %s v%s",
                    "updated" if existing else "added", entry.id, entry.version)
        return entry

    def remove(self, template_id: str) -> bool:
        with _registry_lock:
            registry = self.load()
            remaining = [t for t in registry.templates if t.id != template_id]
            removed = len(remaining) != len(registry.templates)
            registry.templates = remaining
            self.save(registry)
        if removed:
            logger.info("Registry removed template %s", template_id)
        return removed

    def set_active(
        self,
        template_id: str,
        is_active: Optional[bool] = None
    ) -> Optional[TemplateRegistryEntry]:
        """Set (or, with is_active=None, flip) the active flag. None if the id is unknown."""
        with _registry_lock:
            registry = self.load()
            for index, entry in enumerate(registry.templates):
                if entry.id == template_id:
                    updated = entry.model_copy(update={
                        "is_active": (not entry.is_active) if is_active is None else is_active,
                        "updated_at": _later_than(entry.updated_at),
                    })
                    registry.templates[index] = updated
                    self.save(registry)
                    return updated
        return None

    # --------------------------------------------------------
    # Queries
    # --------------------------------------------------------

    def list_all(self) -> List[TemplateRegistryEntry]:
        return list(self.load().templates)

    def list_active(self) -> List[TemplateRegistryEntry]:
        return [t for t in self.load().templates if t.is_active]

    def get_by_id(self, template_id: str) -> Optional[TemplateRegistryEntry]:
        return next((t for t in self.load().templates if t.id == template_id), None)

    # --------------------------------------------------------
    # Paths
    # --------------------------------------------------------

    @staticmethod
    def public_path(template_id: str, relative: str) -> str:
        return f"{PUBLIC_TEMPLATES_PREFIX}{template_id}/{relative.lstrip('/')}"

    def resolve_public_path(self, web_path: str) -> Path:
        """Map a /templates/... web path to its file under the templates root."""
        if not web_path.startswith(PUBLIC_TEMPLATES_PREFIX):
            raise ValueError(f"not a template path: {web_path}")
        relative = web_path[len(PUBLIC_TEMPLATES_PREFIX):]
        resolved = (self.templates_dir / relative).resolve()
        if not resolved.is_relative_to(self.templates_dir.resolve()):
            raise ValueError(f"path escapes the templates root: {web_path}")
        return resolved


def get_template_registry() -> TemplateRegistryStore:
    """FastAPI dependency - registry bound to the configured templates root."""
    settings = get_settings()
    return TemplateRegistryStore(settings.registry_path, settings.templates_dir)
