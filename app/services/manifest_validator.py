"""
Manifest Validator - type-checks a template's manifest.json.

Required: id, name, version, category, entryFile (non-empty strings).
Optional: description, thumbnail, features[], isPremium.

The id doubles as the install directory name, so it must be a slug.
"""

import json
import re
from pathlib import Path
from typing import Any, List, Union

from pydantic import ValidationError

from app.schemas.schemas import REQUIRED_MANIFEST_FIELDS, TemplateManifest
from app.services.errors import IncompleteManifest, MalformedManifest

TEMPLATE_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,119}$")
# names already taken under the templates root
RESERVED_TEMPLATE_IDS = {"registry.json"}


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def find_missing_fields(data: dict) -> List[str]:
    """Required fields that are absent or empty, in declaration order."""
    return [field for field in REQUIRED_MANIFEST_FIELDS if _is_blank(data.get(field))]


def validate_manifest(manifest_bytes: Union[bytes, str]) -> TemplateManifest:
    """
    Parse and check a manifest document.

    Raises:
        MalformedManifest: not JSON, not an object, wrong field types, bad id
        IncompleteManifest: required fields missing or empty
    """
    try:
        if isinstance(manifest_bytes, bytes):
            manifest_bytes = manifest_bytes.decode("utf-8-sig")
        data = json.loads(manifest_bytes)
    except UnicodeDecodeError as e:
        raise MalformedManifest(f"manifest.json is not valid UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise MalformedManifest(
            f"manifest.json is not valid JSON: {e.msg} (line {e.lineno} column {e.colno})"
        ) from e

    if not isinstance(data, dict):
        raise MalformedManifest("manifest.json root must be a JSON object")

    missing = find_missing_fields(data)
    if missing:
        raise IncompleteManifest(missing)

    for field in REQUIRED_MANIFEST_FIELDS:
        if not isinstance(data[field], str):
            raise MalformedManifest(f"manifest field '{field}' must be a string")

    try:
        manifest = TemplateManifest.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise MalformedManifest(f"manifest.json has invalid fields: {problems}") from e

    manifest = manifest.model_copy(update={
        "id": manifest.id.strip(),
        "entry_file": manifest.entry_file.strip().lstrip("/"),
    })

    if not TEMPLATE_ID_PATTERN.match(manifest.id) or ".." in manifest.id:
        raise MalformedManifest(
            f"manifest id '{manifest.id}' must be a slug (letters, digits, '.', '_', '-')"
        )

    if manifest.id.lower() in RESERVED_TEMPLATE_IDS:
        raise MalformedManifest(f"manifest id '{manifest.id}' is reserved")

    return manifest


def validate_manifest_file(manifest_path: Path) -> TemplateManifest:
    """Validate a manifest.json that is already on disk."""
    try:
        raw = Path(manifest_path).read_bytes()
    except OSError as e:
        raise MalformedManifest(f"manifest.json could not be read: {e}") from e
    return validate_manifest(raw)
