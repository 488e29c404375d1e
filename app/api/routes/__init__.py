"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from app.api.routes.admin_template_routes import router as admin_template_router
from app.api.routes.template_routes import router as template_router
from app.api.routes.portfolio_routes import router as portfolio_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(admin_template_router)
api_router.include_router(template_router)
api_router.include_router(portfolio_router)
