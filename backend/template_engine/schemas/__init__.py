"""
Pydantic schemas for the template engine.

Exports rule-structure models, catalog definitions and API request/response
models from a single import point.
"""

from template_engine.schemas.indicator import IndicatorDefinition, IndicatorDefinitionUpsert
from template_engine.schemas.rules import (
    Indicator,
    ParameterDefinition,
    SignalTemplateRules,
    StepCondition,
    StrategyStep,
    TemplateRules,
    UnsupportedIndicatorRejection,
)
from template_engine.schemas.template import (
    ConversationMessage,
    GenerateTemplateRequest,
    GenerationAccepted,
    GenerationJob,
    RegenerateTemplateRequest,
    TemplateResponse,
    TemplateUpdate,
)

__all__ = [
    "ConversationMessage",
    "GenerateTemplateRequest",
    "GenerationAccepted",
    "GenerationJob",
    "Indicator",
    "IndicatorDefinition",
    "IndicatorDefinitionUpsert",
    "ParameterDefinition",
    "RegenerateTemplateRequest",
    "SignalTemplateRules",
    "StepCondition",
    "StrategyStep",
    "TemplateResponse",
    "TemplateRules",
    "TemplateUpdate",
    "UnsupportedIndicatorRejection",
]
