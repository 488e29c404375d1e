"""
Portfolio Template Service
Template packaging and portfolio code generation for the career platform.

Architecture:
- Template archives: uploaded zips installed under the public templates root
- Registry: registry.json lists installed templates (source of truth for loaders)
- PostgreSQL: admin-facing mirror of installed templates
- DeepSeek AI: resume -> portfolio data parsing only
"""

__version__ = "1.0.0"
