"""
Business logic layer for the template engine.

PURPOSE: Services sit between API routes / the worker and the persistence
layer. They enforce ownership and own the template lifecycle.

Services:
    - TemplateService: Generation dispatch, outcome persistence, template CRUD
"""

from template_engine.services.template_service import (
    TemplateAccessError,
    TemplateNotFoundError,
    TemplateService,
)

__all__ = [
    "TemplateAccessError",
    "TemplateNotFoundError",
    "TemplateService",
]
