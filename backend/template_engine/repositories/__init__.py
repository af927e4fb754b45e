"""
Persistence adapters for the template engine.

PURPOSE: Keep SQLAlchemy queries out of the service layer.
"""

from template_engine.repositories.templates import SqlTemplateRepository

__all__ = ["SqlTemplateRepository"]
