"""
Portfolio Routes

POST /portfolio/parse-resume - Resume (file or text) -> portfolio data
POST /portfolio/generate-code - Build the portfolio project, returns a download link
GET /portfolio/download/{file_name} - One-time archive download
POST /portfolio/code-view - Generated sources for the in-app code viewer
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse
from starlette.background import BackgroundTask
from starlette.concurrency import run_in_threadpool

from app.api.responses import error_response, public_error
from app.core.auth import get_current_user
from app.core.config import get_settings
from app.schemas.schemas import (
    CodeViewResponse, GeneratedTemplateInfo, ParsedPortfolioResponse,
    PortfolioGenerateRequest, PortfolioGenerateResponse
)
from app.services.archive_packager import PortfolioArchiveStore, get_archive_store
from app.services.deepseek_client import DeepSeekClient, get_deepseek_client
from app.services.errors import TemplateServiceError
from app.services.portfolio_generator import code_view, resolve_template, synthesize
from app.services.portfolio_parser import parse_resume_for_portfolio
from app.services.template_registry import TemplateRegistryStore, get_template_registry
from app.utils.file_upload import extract_text_from_file

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/portfolio", tags=["Portfolio"])

GENERATION_FAILED = "Failed to generate portfolio code"


@router.post("/parse-resume", response_model=ParsedPortfolioResponse)
async def parse_resume(
    resume: Optional[UploadFile] = File(None),
    resume_text: Optional[str] = Form(None, alias="resumeText"),
    user: dict = Depends(get_current_user),
    client: DeepSeekClient = Depends(get_deepseek_client)
):
    """
    Turn a resume into portfolio data.

    Send either a file (`resume`: PDF/DOCX/TXT) or raw text (`resumeText`).
    """
    if resume is not None and resume.filename:
        text, _ = await extract_text_from_file(resume, get_settings().max_resume_upload_mb)
    else:
        text = (resume_text or "").strip()

    if not text:
        return error_response(400, "Resume text or file is required")

    try:
        data = await run_in_threadpool(parse_resume_for_portfolio, text, client)
    except TemplateServiceError as e:
        return public_error(e)

    return ParsedPortfolioResponse(data=data)


@router.post("/generate-code", response_model=PortfolioGenerateResponse)
def generate_code(
    request: PortfolioGenerateRequest,
    user: dict = Depends(get_current_user),
    registry: TemplateRegistryStore = Depends(get_template_registry),
    store: PortfolioArchiveStore = Depends(get_archive_store)
):
    """Synthesize the project for the chosen template and pack it for download."""
    try:
        template = resolve_template(registry, request.template_id)
        tree = synthesize(request.portfolio_data, request.template_id, registry)
        file_name, _ = store.create(tree)
    except TemplateServiceError as e:
        return public_error(e)
    except Exception:
        logger.exception("Portfolio generation failed for template %s", request.template_id)
        return error_response(500, GENERATION_FAILED, GENERATION_FAILED)

    logger.info("User %s generated %s with template %s", user["user_id"], file_name, template.id)
    return PortfolioGenerateResponse(
        download_url=f"/api/portfolio/download/{file_name}",
        file_name=file_name,
        template=GeneratedTemplateInfo(id=template.id, name=template.name)
    )


@router.get("/download/{file_name}")
def download_portfolio(
    file_name: str,
    store: PortfolioArchiveStore = Depends(get_archive_store)
):
    """Stream the archive once; it is deleted after the response is sent."""
    try:
        path = store.claim(file_name)
    except TemplateServiceError as e:
        return public_error(e, "Failed to download file")

    return FileResponse(
        path,
        media_type="application/zip",
        filename=file_name,
        background=BackgroundTask(store.discard, path)
    )


@router.post("/code-view", response_model=CodeViewResponse)
def view_code(
    request: PortfolioGenerateRequest,
    user: dict = Depends(get_current_user),
    registry: TemplateRegistryStore = Depends(get_template_registry)
):
    """Generated sources without producing a downloadable archive."""
    try:
        structure, folders = code_view(request.portfolio_data, request.template_id, registry)
    except TemplateServiceError as e:
        return public_error(e)
    except Exception:
        logger.exception("Code view failed for template %s", request.template_id)
        return error_response(500, GENERATION_FAILED, GENERATION_FAILED)

    return CodeViewResponse(structure=structure, folders=folders)
