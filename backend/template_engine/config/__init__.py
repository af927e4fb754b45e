"""
PURPOSE: Export configuration settings and constants for the template engine.

This module centralizes access to all configuration settings and constants
used throughout the generation pipeline.
"""

from .constants import (
    ConditionKind,
    CROSS_KINDS,
    DEFAULT_CATEGORY,
    GLOBAL_OWNER,
    PRICE_TYPE,
    SignalDirection,
    STEP_LISTS,
    SUPPORTED_INDICATORS,
    TemplateStatus,
    TemplateType,
    THRESHOLD_KINDS,
)
from .settings import settings

__all__ = [
    "settings",
    "ConditionKind",
    "CROSS_KINDS",
    "DEFAULT_CATEGORY",
    "GLOBAL_OWNER",
    "PRICE_TYPE",
    "SignalDirection",
    "STEP_LISTS",
    "SUPPORTED_INDICATORS",
    "TemplateStatus",
    "TemplateType",
    "THRESHOLD_KINDS",
]
