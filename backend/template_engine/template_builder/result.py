"""
PURPOSE: Value types passed into and out of the generation pipeline.

GenerationRequest is what the service hands to TemplatePipeline.run();
PipelineSuccess / PipelineFailure is the tagged outcome it gets back. Expected
failures travel as values, never as exceptions.

CALLED BY:
    - template_builder/pipeline.py
    - template_builder/composer.py
    - services/template_service.py
    - worker.py (retry decision)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from template_engine.config.constants import DEFAULT_CATEGORY, TemplateType
from template_engine.schemas.indicator import IndicatorDefinition
from template_engine.schemas.rules import (
    SignalTemplateRules,
    TemplateRules,
    UnsupportedIndicatorRejection,
)
from template_engine.template_builder.corrector import Correction


class PipelineStage(str, Enum):
    """Stages of one generation run, in execution order."""

    EXTRACTING = "extracting"
    RESOLVING = "resolving"
    COMPOSING = "composing"
    GENERATING = "generating"
    SANITIZING = "sanitizing"
    VALIDATING = "validating"
    CORRECTING = "correcting"
    PERSISTED = "persisted"
    FAILED = "failed"


class FailureKind(str, Enum):
    """Why a run failed, which decides whether it may be retried."""

    RETRYABLE_BACKEND = "retryable_backend"
    PERMANENT_VALIDATION = "permanent_validation"
    AUTHORIZATION = "authorization"
    UNSUPPORTED_INDICATOR = "unsupported_indicator"


@dataclass
class GenerationRequest:
    """
    Input to one pipeline run.

    Attributes:
        conversation: Conversation summary text fed to extraction and generation
        name: Template name embedded in the prompt
        description: Template description embedded in the prompt
        category: Template category embedded in the prompt
        template_type: execution (stepwise) or signal
        direction: Signal direction (signal templates only)
        timeframe: Signal timeframe (signal templates only)
    """

    conversation: str
    name: str
    description: str = ""
    category: str = DEFAULT_CATEGORY
    template_type: TemplateType = TemplateType.EXECUTION
    direction: Optional[str] = None
    timeframe: Optional[str] = None

    @property
    def is_signal(self) -> bool:
        return self.template_type == TemplateType.SIGNAL


@dataclass
class PipelineSuccess:
    """Validated, corrected rules ready to persist."""

    rules: Union[TemplateRules, SignalTemplateRules]
    corrections: List[Correction] = field(default_factory=list)
    indicators: List[IndicatorDefinition] = field(default_factory=list)
    stage: PipelineStage = PipelineStage.PERSISTED

    @property
    def ok(self) -> bool:
        return True


@dataclass
class PipelineFailure:
    """
    Terminal failure of a run.

    Attributes:
        kind: Failure category
        stage: Stage that was running when the failure happened
        message: Human-readable reason (stored on the template)
        status: Provider HTTP status for backend failures, if any
        rejection: Structured refusal for unsupported indicators
    """

    kind: FailureKind
    stage: PipelineStage
    message: str
    status: Optional[int] = None
    rejection: Optional[UnsupportedIndicatorRejection] = None

    @property
    def ok(self) -> bool:
        return False

    @property
    def retryable(self) -> bool:
        return self.kind == FailureKind.RETRYABLE_BACKEND


PipelineOutcome = Union[PipelineSuccess, PipelineFailure]
