"""Database models for the template engine.

Import all models here so Alembic can detect them during migration generation.
"""

from template_engine.models.indicator import IndicatorDefinitionRecord
from template_engine.models.template import Template

__all__ = [
    "IndicatorDefinitionRecord",
    "Template",
]
