"""
Template Routes (public)

GET /templates - Active templates for the portfolio builder
"""

from fastapi import APIRouter, Depends

from app.api.responses import public_error
from app.schemas.schemas import ActiveTemplatesResponse
from app.services.errors import TemplateServiceError
from app.services.template_registry import TemplateRegistryStore, get_template_registry

router = APIRouter(prefix="/templates", tags=["Templates"])


@router.get("", response_model=ActiveTemplatesResponse)
def list_active_templates(registry: TemplateRegistryStore = Depends(get_template_registry)):
    """Only templates with isActive=true are listed."""
    try:
        return ActiveTemplatesResponse(templates=registry.list_active())
    except TemplateServiceError as e:
        return public_error(e, "Failed to fetch templates")
