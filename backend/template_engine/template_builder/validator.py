"""
PURPOSE: Structural parsing and integrity checks for generated rules.

Parsing (before correction) turns sanitized text into typed rules and
rejects malformed or incomplete output. The integrity check (after
correction) enforces unique ids, dense step ordering, per-kind field groups
and referential integrity. Nothing here repairs anything.

CALLED BY: template_builder/pipeline.py (VALIDATING stage)
"""

import json
from typing import Any, Dict, Optional, Set, Type, TypeVar, Union

from pydantic import ValidationError

from template_engine.config.constants import CROSS_KINDS, THRESHOLD_KINDS
from template_engine.schemas.rules import (
    SignalTemplateRules,
    StepCondition,
    TemplateRules,
    UnsupportedIndicatorRejection,
    canonical_keys,
    is_filled,
)
from template_engine.utils.logger import get_logger

logger = get_logger("template_builder.validator")

MALFORMED_OUTPUT = "MALFORMED_OUTPUT"
INCOMPLETE_TEMPLATE = "INCOMPLETE_TEMPLATE"
DUPLICATE_INDICATOR_ID = "DUPLICATE_INDICATOR_ID"
INVALID_STEP_ORDER = "INVALID_STEP_ORDER"
INVALID_CONDITION = "INVALID_CONDITION"
DANGLING_REFERENCE = "DANGLING_REFERENCE"
DIRECTION_MISMATCH = "DIRECTION_MISMATCH"

RulesT = TypeVar("RulesT", TemplateRules, SignalTemplateRules)


class TemplateValidationError(Exception):
    """
    Generated output violates the rules contract.

    Attributes:
        code: One of the module-level violation codes
        message: Human-readable detail
    """

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


def _summarise(error: ValidationError, limit: int = 3) -> str:
    """Compact 'loc: msg' summary of the first few pydantic errors."""
    parts = []
    for item in error.errors()[:limit]:
        loc = ".".join(str(p) for p in item.get("loc", ()))
        parts.append(f"{loc}: {item.get('msg', 'invalid')}")
    extra = error.error_count() - limit
    if extra > 0:
        parts.append(f"(+{extra} more)")
    return "; ".join(parts)


def _condition_label(list_name: str, step_order: Optional[int], condition: StepCondition) -> str:
    where = list_name if step_order is None else f"{list_name}[T{step_order}]"
    return f"{where} condition '{condition.id or '?'}'"


class SchemaValidator:
    """
    PURPOSE: Parse and check generated template rules.

    CALLED BY: TemplatePipeline
    """

    # ------------------------------------------------------------------ #
    #  Structural parsing
    # ------------------------------------------------------------------ #

    def load_payload(self, text: str) -> Dict[str, Any]:
        """
        PURPOSE: Decode sanitized text into a JSON object.

        Raises:
            TemplateValidationError: MALFORMED_OUTPUT for invalid JSON or a
                non-object top level.
        """
        try:
            payload = json.loads(text)
        except (json.JSONDecodeError, TypeError) as e:
            raise TemplateValidationError(MALFORMED_OUTPUT, f"invalid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise TemplateValidationError(
                MALFORMED_OUTPUT,
                f"top-level JSON must be an object, got {type(payload).__name__}",
            )
        return payload

    def detect_rejection(self, payload: Dict[str, Any]) -> Optional[UnsupportedIndicatorRejection]:
        """Return the structured refusal when the model declined to build a template."""
        if payload.get("error") is not True:
            return None
        try:
            return UnsupportedIndicatorRejection.model_validate(
                canonical_keys(payload, ["error", "message", "unsupportedIndicators", "suggestedAlternatives"])
            )
        except ValidationError as e:
            logger.warning("rejection_payload_invalid", error=_summarise(e))
            return None

    def parse_stepwise(self, text: str) -> TemplateRules:
        """Parse sanitized text as a stepwise template."""
        return self.parse_stepwise_payload(self.load_payload(text))

    def parse_signal(self, text: str) -> SignalTemplateRules:
        """Parse sanitized text as a signal template."""
        return self.parse_signal_payload(self.load_payload(text))

    def parse_stepwise_payload(self, payload: Dict[str, Any]) -> TemplateRules:
        return self._parse(payload, TemplateRules)

    def parse_signal_payload(self, payload: Dict[str, Any]) -> SignalTemplateRules:
        return self._parse(payload, SignalTemplateRules)

    def check_direction(self, rules: SignalTemplateRules, expected: Optional[str]) -> None:
        """
        PURPOSE: Reject a signal template whose bias differs from the requested one.

        Raises:
            TemplateValidationError: DIRECTION_MISMATCH
        """
        if expected is None:
            return
        wanted = str(getattr(expected, "value", expected)).strip().lower()
        if rules.direction.value != wanted:
            raise TemplateValidationError(
                DIRECTION_MISMATCH,
                f"requested a {wanted} signal but the output is {rules.direction.value}",
            )

    def _parse(self, payload: Dict[str, Any], model: Type[RulesT]) -> RulesT:
        """
        PURPOSE: Check required keys, then validate field types.

        Raises:
            TemplateValidationError: INCOMPLETE_TEMPLATE when a required key is
                missing or null, MALFORMED_OUTPUT when a field has the wrong type.
        """
        canonical = canonical_keys(payload, model.known_keys())
        missing = [key for key in model.REQUIRED_KEYS if canonical.get(key) is None]
        if missing:
            raise TemplateValidationError(
                INCOMPLETE_TEMPLATE,
                f"missing required field(s): {', '.join(missing)}",
            )
        try:
            return model.model_validate(canonical)
        except ValidationError as e:
            raise TemplateValidationError(MALFORMED_OUTPUT, _summarise(e)) from e

    # ------------------------------------------------------------------ #
    #  Integrity (runs after auto-correction)
    # ------------------------------------------------------------------ #

    def check_integrity(self, rules: Union[TemplateRules, SignalTemplateRules]) -> None:
        """
        PURPOSE: Enforce the semantic invariants of corrected rules.

        Args:
            rules: Parsed and corrected rules

        Raises:
            TemplateValidationError: DUPLICATE_INDICATOR_ID, INVALID_STEP_ORDER,
                INVALID_CONDITION or DANGLING_REFERENCE on the first violation.
        """
        known_ids: Set[str] = set()
        for indicator in rules.indicators:
            if indicator.id in known_ids:
                raise TemplateValidationError(
                    DUPLICATE_INDICATOR_ID,
                    f"indicator id '{indicator.id}' is declared more than once",
                )
            known_ids.add(indicator.id)

        if isinstance(rules, TemplateRules):
            for list_name, steps in rules.step_lists():
                orders = [step.order for step in steps]
                if orders != list(range(1, len(steps) + 1)):
                    raise TemplateValidationError(
                        INVALID_STEP_ORDER,
                        f"{list_name} step orders must be 1..{len(steps)} in sequence, got {orders}",
                    )

        for list_name, step_order, condition in rules.iter_conditions():
            self._check_condition(list_name, step_order, condition, known_ids)

    def _check_condition(
        self,
        list_name: str,
        step_order: Optional[int],
        condition: StepCondition,
        known_ids: Set[str],
    ) -> None:
        label = _condition_label(list_name, step_order, condition)

        if condition.kind in THRESHOLD_KINDS:
            if not is_filled(condition.indicator) or not is_filled(condition.value):
                raise TemplateValidationError(
                    INVALID_CONDITION,
                    f"{label}: '{condition.kind.value}' requires indicator and value",
                )
            if is_filled(condition.indicator1) or is_filled(condition.indicator2):
                raise TemplateValidationError(
                    INVALID_CONDITION,
                    f"{label}: '{condition.kind.value}' must not set indicator1/indicator2",
                )
        elif condition.kind in CROSS_KINDS:
            if not is_filled(condition.indicator1) or not is_filled(condition.indicator2):
                raise TemplateValidationError(
                    INVALID_CONDITION,
                    f"{label}: '{condition.kind.value}' requires indicator1 and indicator2",
                )
            if is_filled(condition.indicator) or is_filled(condition.value):
                raise TemplateValidationError(
                    INVALID_CONDITION,
                    f"{label}: '{condition.kind.value}' must not set indicator/value",
                )
            if condition.indicator1 == condition.indicator2:
                raise TemplateValidationError(
                    DANGLING_REFERENCE,
                    f"{label}: indicator1 and indicator2 both reference '{condition.indicator1}'",
                )

        for ref in condition.references():
            if ref not in known_ids:
                raise TemplateValidationError(
                    DANGLING_REFERENCE,
                    f"{label}: references unknown indicator id '{ref}'",
                )
