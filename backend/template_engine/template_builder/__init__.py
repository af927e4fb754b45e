"""
PURPOSE: Conversation-to-rules generation pipeline.

Stages: IndicatorExtractor -> IndicatorResolver -> PromptComposer ->
GenerationBackend -> sanitize -> SchemaValidator -> ConditionAutoCorrector,
orchestrated by TemplatePipeline.
"""

from template_engine.template_builder.composer import ComposedPrompt, PromptComposer
from template_engine.template_builder.corrector import ConditionAutoCorrector, Correction, CorrectionReport
from template_engine.template_builder.extractor import IndicatorExtractor
from template_engine.template_builder.pipeline import TemplatePipeline, build_pipeline
from template_engine.template_builder.resolver import IndicatorResolver
from template_engine.template_builder.result import (
    FailureKind,
    GenerationRequest,
    PipelineFailure,
    PipelineOutcome,
    PipelineStage,
    PipelineSuccess,
)
from template_engine.template_builder.sanitizer import sanitize
from template_engine.template_builder.validator import SchemaValidator, TemplateValidationError

__all__ = [
    "ComposedPrompt",
    "ConditionAutoCorrector",
    "Correction",
    "CorrectionReport",
    "FailureKind",
    "GenerationRequest",
    "IndicatorExtractor",
    "IndicatorResolver",
    "PipelineFailure",
    "PipelineOutcome",
    "PipelineStage",
    "PipelineSuccess",
    "PromptComposer",
    "SchemaValidator",
    "TemplatePipeline",
    "TemplateValidationError",
    "build_pipeline",
    "sanitize",
]
