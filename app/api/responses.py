"""
Error bodies shared by all routes: {"message": ..., "error": ...}.
"""

import logging
from typing import Optional

from fastapi.responses import JSONResponse

from app.services.errors import TemplateServiceError

logger = logging.getLogger("uvicorn.error")


def error_response(status_code: int, message: str, error: Optional[str] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message, "error": error})


def admin_error(message: str, exc: Exception) -> JSONResponse:
    """Admin callers are trusted: the underlying error text is returned as-is."""
    if isinstance(exc, TemplateServiceError):
        return error_response(exc.status_code, message, exc.detail)
    logger.exception("%s", message)
    return error_response(500, message, str(exc) or exc.__class__.__name__)


def public_error(exc: TemplateServiceError, message: Optional[str] = None) -> JSONResponse:
    """End-user error: generic message, details only in the log."""
    logger.warning("%s: %s", exc.__class__.__name__, exc.detail)
    return error_response(exc.status_code, message or exc.public_message, exc.public_message)
