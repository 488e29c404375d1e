"""
API module - FastAPI routers and endpoint definitions.

- Admin template management (upload, list, delete, toggle)
- Public template listing
- Portfolio parsing, generation, code view and download

Usage:
    from app.api.routes import api_router
    app.include_router(api_router, prefix="/api")
"""
