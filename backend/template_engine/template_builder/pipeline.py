"""
PURPOSE: One-shot generation state machine from conversation text to validated rules.

    EXTRACTING -> RESOLVING -> COMPOSING -> GENERATING -> SANITIZING
        -> VALIDATING (parse) -> CORRECTING -> VALIDATING (integrity)

Each stage runs once, in order. Expected failures come back as a
PipelineFailure value; the pipeline never persists anything itself.
asyncio.CancelledError propagates unchanged.

CALLED BY:
    - services/template_service.py
    - worker.py (through the service)
"""

from typing import List, Optional, Union

from template_engine.catalog.repository import IndicatorCatalog
from template_engine.config.settings import Settings
from template_engine.config.settings import settings as default_settings
from template_engine.schemas.indicator import IndicatorDefinition
from template_engine.schemas.rules import SignalTemplateRules, TemplateRules
from template_engine.template_builder.backends.base import BackendError, GenerationBackend
from template_engine.template_builder.backends.factory import BackendPair
from template_engine.template_builder.composer import ComposedPrompt, PromptComposer
from template_engine.template_builder.corrector import ConditionAutoCorrector
from template_engine.template_builder.extractor import IndicatorExtractor
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
from template_engine.utils.logger import get_logger

logger = get_logger("template_builder.pipeline")

# Provider statuses that will not succeed on retry (bad or revoked credentials)
_AUTH_STATUSES = frozenset({401, 403})


class TemplatePipeline:
    """
    PURPOSE: Run the generation stages for one request and return a tagged outcome.

    CALLED BY: TemplateService.run_generation()
    """

    def __init__(
        self,
        extractor: IndicatorExtractor,
        resolver: IndicatorResolver,
        composer: PromptComposer,
        backend: GenerationBackend,
        validator: SchemaValidator,
        corrector: ConditionAutoCorrector,
        settings: Optional[Settings] = None,
    ) -> None:
        self._extractor = extractor
        self._resolver = resolver
        self._composer = composer
        self._backend = backend
        self._validator = validator
        self._corrector = corrector
        self._settings = settings or default_settings

    async def run(self, request: GenerationRequest) -> PipelineOutcome:
        """
        PURPOSE: Execute every stage once for the given request.

        Args:
            request: Conversation text and template metadata

        Returns:
            PipelineOutcome: PipelineSuccess with corrected rules, or
                PipelineFailure naming the kind and the stage that failed.
        """
        log = logger.bind(template_name=request.name, template_type=request.template_type.value)

        stage = PipelineStage.EXTRACTING
        log.debug("pipeline_stage", stage=stage.value)
        keys = await self._extractor.extract(request.conversation)

        stage = PipelineStage.RESOLVING
        log.debug("pipeline_stage", stage=stage.value, keys=keys)
        definitions = await self._resolver.resolve(keys)

        stage = PipelineStage.COMPOSING
        log.debug("pipeline_stage", stage=stage.value, indicators=len(definitions))
        composed = self._compose(request, definitions)

        stage = PipelineStage.GENERATING
        log.debug("pipeline_stage", stage=stage.value, prompt_chars=len(composed.prompt))
        try:
            raw = await self._backend.complete(
                composed.prompt,
                system_instruction=composed.system_instruction,
                temperature=self._settings.GENERATION_TEMPERATURE,
                max_tokens=self._settings.GENERATION_MAX_TOKENS,
                timeout=self._settings.GENERATION_TIMEOUT_SECONDS,
            )
        except BackendError as e:
            kind = FailureKind.AUTHORIZATION if e.status in _AUTH_STATUSES else FailureKind.RETRYABLE_BACKEND
            log.warning("pipeline_backend_failed", stage=stage.value, status=e.status, error=e.message, kind=kind.value)
            return PipelineFailure(kind=kind, stage=stage, message=str(e), status=e.status)

        stage = PipelineStage.SANITIZING
        log.debug("pipeline_stage", stage=stage.value, raw_chars=len(raw))
        cleaned = sanitize(raw)

        stage = PipelineStage.VALIDATING
        log.debug("pipeline_stage", stage=stage.value)
        try:
            payload = self._validator.load_payload(cleaned)
            rejection = self._validator.detect_rejection(payload)
            if rejection is not None:
                log.info(
                    "pipeline_unsupported_indicator",
                    unsupported=rejection.unsupported_indicators,
                    alternatives=rejection.suggested_alternatives,
                )
                return PipelineFailure(
                    kind=FailureKind.UNSUPPORTED_INDICATOR,
                    stage=stage,
                    message=rejection.message,
                    rejection=rejection,
                )
            rules = self._parse(request, payload)

            stage = PipelineStage.CORRECTING
            log.debug("pipeline_stage", stage=stage.value)
            report = self._corrector.correct(rules)

            stage = PipelineStage.VALIDATING
            self._validator.check_integrity(report.rules)
        except TemplateValidationError as e:
            log.warning("pipeline_validation_failed", stage=stage.value, code=e.code, error=e.message)
            return PipelineFailure(kind=FailureKind.PERMANENT_VALIDATION, stage=stage, message=str(e))

        log.info(
            "pipeline_succeeded",
            indicators=[i.id for i in report.rules.indicators],
            corrections=len(report.corrections),
        )
        return PipelineSuccess(rules=report.rules, corrections=report.corrections, indicators=definitions)

    def _compose(self, request: GenerationRequest, definitions: List[IndicatorDefinition]) -> ComposedPrompt:
        if request.is_signal:
            return self._composer.compose_signal(request, definitions)
        return self._composer.compose_stepwise(request, definitions)

    def _parse(self, request: GenerationRequest, payload: dict) -> Union[TemplateRules, SignalTemplateRules]:
        if request.is_signal:
            rules = self._validator.parse_signal_payload(payload)
            self._validator.check_direction(rules, request.direction)
            return rules
        return self._validator.parse_stepwise_payload(payload)


def build_pipeline(
    backends: BackendPair,
    catalog: Optional[IndicatorCatalog],
    settings: Optional[Settings] = None,
) -> TemplatePipeline:
    """
    PURPOSE: Wire the stage components around a backend pair and a catalog.

    CALLED BY: main.py lifespan, worker.py, tests
    """
    settings = settings or default_settings
    composer = PromptComposer()
    return TemplatePipeline(
        extractor=IndicatorExtractor(
            backends.extraction,
            catalog=catalog,
            composer=composer,
            max_tokens=settings.EXTRACTION_MAX_TOKENS,
            timeout=settings.EXTRACTION_TIMEOUT_SECONDS,
        ),
        resolver=IndicatorResolver(catalog),
        composer=composer,
        backend=backends.generation,
        validator=SchemaValidator(),
        corrector=ConditionAutoCorrector(),
        settings=settings,
    )
