"""
PURPOSE: Indicator catalog package.

Durable indicator definitions, the process-owned TTL cache in front of them,
and the built-in fallback table used when the catalog has no entry.
"""

from template_engine.catalog.cache import IndicatorCache
from template_engine.catalog.fallback import FALLBACK_DEFINITIONS, get_fallback
from template_engine.catalog.repository import (
    IndicatorCatalog,
    SqlIndicatorCatalog,
    get_indicator_catalog,
)

__all__ = [
    "FALLBACK_DEFINITIONS",
    "IndicatorCache",
    "IndicatorCatalog",
    "SqlIndicatorCatalog",
    "get_fallback",
    "get_indicator_catalog",
]
