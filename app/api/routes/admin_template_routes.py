"""
Admin Template Routes

POST /admin/templates/upload - Upload and install a template zip
GET /admin/templates - Database rows and registry entries (inactive included)
DELETE /admin/templates/{template_id} - Remove row, registry entry and files
PATCH /admin/templates/{template_id}/toggle - Flip isActive
"""

import logging
from typing import Any, Callable, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from starlette.concurrency import run_in_threadpool

from app.api.responses import admin_error, error_response
from app.core.auth import get_current_admin
from app.core.config import get_settings
from app.db.templates_table import (
    delete_template_row, list_template_rows, set_template_row_active, upsert_template_row
)
from app.schemas.schemas import (
    AdminTemplatesResponse, MessageResponse, RegistryView, TemplateSummary,
    TemplateToggleResponse, TemplateUploadResponse
)
from app.services.errors import ManifestValidationError, TemplateInstallError
from app.services.template_installer import get_template_installer
from app.services.template_registry import TemplateRegistryStore, get_template_registry
from app.utils.file_upload import discard_upload, save_template_upload, validate_template_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/templates", tags=["Admin Templates"])


def _mirror(action: Callable[..., Any], *args: Any) -> None:
    """Apply a change to the database rows; the registry has already changed."""
    try:
        action(*args)
    except Exception as e:
        logger.warning("Templates table out of sync (%s%r): %s", action.__name__, args, e)


@router.post("/upload", response_model=TemplateUploadResponse)
async def upload_template(
    template: Optional[UploadFile] = File(None),
    admin: dict = Depends(get_current_admin),
    registry: TemplateRegistryStore = Depends(get_template_registry)
):
    """
    Upload a template archive (multipart field `template`).

    The zip must contain manifest.json at its root (or inside a single
    top-level folder) and the entry file it declares.
    """
    if template is None:
        return error_response(400, "No file uploaded")

    validate_template_upload(template)
    settings = get_settings()
    upload_path = await save_template_upload(
        template, settings.template_uploads_dir, settings.max_template_upload_mb
    )

    try:
        installer = get_template_installer(registry)
        entry = await run_in_threadpool(installer.install, upload_path)
    except (ManifestValidationError, TemplateInstallError) as e:
        logger.info("Rejected template upload %s: %s", template.filename, e.detail)
        return admin_error("Invalid template structure", e)
    except Exception as e:
        return admin_error("Failed to upload template", e)
    finally:
        discard_upload(upload_path)

    await run_in_threadpool(_mirror, upsert_template_row, entry, admin["user_id"])
    return TemplateUploadResponse(
        message="Template uploaded successfully",
        template=TemplateSummary(
            id=entry.id, name=entry.name, version=entry.version, category=entry.category
        )
    )


@router.get("", response_model=AdminTemplatesResponse)
def list_templates(
    admin: dict = Depends(get_current_admin),
    registry: TemplateRegistryStore = Depends(get_template_registry)
):
    """All templates, including inactive ones."""
    try:
        return AdminTemplatesResponse(
            database=list_template_rows(),
            registry=RegistryView(templates=registry.list_all())
        )
    except Exception as e:
        return admin_error("Failed to fetch templates", e)


@router.delete("/{template_id}", response_model=MessageResponse)
def delete_template(
    template_id: str,
    admin: dict = Depends(get_current_admin),
    registry: TemplateRegistryStore = Depends(get_template_registry)
):
    """Remove a template everywhere. Unknown ids are a no-op."""
    try:
        get_template_installer(registry).uninstall(template_id)
    except Exception as e:
        return admin_error("Failed to delete template", e)

    _mirror(delete_template_row, template_id)
    return MessageResponse(message="Template deleted successfully")


@router.patch("/{template_id}/toggle", response_model=TemplateToggleResponse)
def toggle_template(
    template_id: str,
    admin: dict = Depends(get_current_admin),
    registry: TemplateRegistryStore = Depends(get_template_registry)
):
    """Flip isActive in the registry and mirror it into the database row."""
    try:
        updated = registry.set_active(template_id)
        if updated is None:
            return error_response(404, "Template not found")
    except Exception as e:
        return admin_error("Failed to toggle template status", e)

    _mirror(set_template_row_active, template_id, updated.is_active)
    logger.info("Template %s is now %s", template_id, "active" if updated.is_active else "inactive")
    return TemplateToggleResponse(template=updated)
