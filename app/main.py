"""
Portfolio Template Service - Main Application

FastAPI backend with:
- Template archive upload/installation (admin)
- JSON template registry, installed templates served from /templates
- Portfolio code generation with one-time zip downloads
- DeepSeek AI for resume -> portfolio parsing
- PostgreSQL mirror of installed templates
- JWT authentication

Run: uvicorn app.main:app --reload
"""

import asyncio
import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import api_router
from app.core.config import Settings, get_settings
from app.db.postgres import test_postgres_connection
from app.db.templates_table import init_templates_table
from app.services.cleanup_service import cleanup_loop

logger = logging.getLogger("uvicorn.error")


def ensure_directories(settings: Settings) -> None:
    for directory in (
        settings.templates_dir,
        settings.template_uploads_dir,
        settings.portfolio_downloads_dir,
        settings.staging_dir,
    ):
        directory.mkdir(parents=True, exist_ok=True)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    ensure_directories(settings)

    app = FastAPI(
        title="Portfolio Template Service",
        description="""
    Template packaging and portfolio code generation.

    ## Features
    - **Admin templates**: Upload, list, delete and toggle template archives
    - **Templates**: Public list of active templates
    - **Portfolio**: Resume parsing, code generation, code view, one-time download
    """,
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Every error body is {"message", "error"}
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": str(exc.detail), "error": str(exc.detail)},
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return JSONResponse(status_code=400, content={"message": "Invalid request", "error": problems})

    # Include API routes
    app.include_router(api_router, prefix="/api")

    # Installed templates (manifestPath / entryPath point here)
    app.mount("/templates", StaticFiles(directory=str(settings.templates_dir)), name="templates")

    @app.on_event("startup")
    async def startup_event():
        """Create the templates table and start the expiry sweep."""
        try:
            init_templates_table()
            logger.info("Templates table ready")
        except Exception as e:
            logger.warning("Templates table initialization failed: %s", e)

        if settings.cleanup_enabled:
            app.state.cleanup_task = asyncio.create_task(cleanup_loop(settings))

    @app.on_event("shutdown")
    async def shutdown_event():
        task = getattr(app.state, "cleanup_task", None)
        if task is not None:
            task.cancel()

    @app.get("/health", tags=["Health"])
    def health_check():
        """Detailed health check."""
        return {
            "status": "healthy",
            "database": "connected" if test_postgres_connection() else "disconnected"
        }

    return app


app = create_app()
