"""
Schemas module - Request/Response schemas for API endpoints.

All schemas live in app/schemas/schemas.py:
- Template manifest and registry documents
- Portfolio data sent to the code generator
- API request/response bodies
"""
