"""
PURPOSE: Deterministic repair of misplaced indicator references in conditions.

Models regularly put the compared indicator in the wrong field group. Two
single-field moves are applied, using only the condition's own fields:

    above / below:         indicator empty, exactly one of indicator1 /
                           indicator2 set  -> move it to indicator
    crossover / crossunder: indicator1 empty, indicator set -> move it to indicator1

Anything else (several misplacements, a missing second operand, a
self-comparison) is left alone for the integrity check to reject. Input
rules are never mutated; untouched conditions are returned as the same
objects.

CALLED BY: template_builder/pipeline.py (CORRECTING stage)
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from template_engine.config.constants import CROSS_KINDS, STEP_LISTS, THRESHOLD_KINDS
from template_engine.schemas.rules import (
    SignalTemplateRules,
    StepCondition,
    StrategyStep,
    TemplateRules,
    is_filled,
)
from template_engine.utils.logger import get_logger

logger = get_logger("template_builder.corrector")

Rules = Union[TemplateRules, SignalTemplateRules]


@dataclass(frozen=True)
class Correction:
    """One field move applied to one condition."""

    list_name: str
    step_order: Optional[int]
    condition_id: Optional[str]
    source: str
    target: str


@dataclass
class CorrectionReport:
    """Corrected rules plus every move that was applied."""

    rules: Rules
    corrections: List[Correction] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.corrections)


def correct_condition(condition: StepCondition) -> Tuple[StepCondition, Optional[Tuple[str, str]]]:
    """
    PURPOSE: Apply at most one field move to a single condition.

    Returns:
        Tuple: (condition, (source, target)) when a move was applied, otherwise
            (the same condition object, None).
    """
    if condition.kind in THRESHOLD_KINDS and not is_filled(condition.indicator):
        has_first = is_filled(condition.indicator1)
        has_second = is_filled(condition.indicator2)
        if has_first != has_second:
            source = "indicator1" if has_first else "indicator2"
            moved = condition.model_copy(
                update={"indicator": getattr(condition, source), source: None}
            )
            return moved, (source, "indicator")

    if condition.kind in CROSS_KINDS and not is_filled(condition.indicator1) and is_filled(condition.indicator):
        moved = condition.model_copy(
            update={"indicator1": condition.indicator, "indicator": None}
        )
        return moved, ("indicator", "indicator1")

    return condition, None


class ConditionAutoCorrector:
    """
    PURPOSE: Walk every condition of a template and apply correct_condition.

    CALLED BY: TemplatePipeline
    """

    def correct(self, rules: Rules) -> CorrectionReport:
        """
        PURPOSE: Return corrected copies of the rules and a report of the moves.

        Args:
            rules: Parsed rules (not modified)

        Returns:
            CorrectionReport: rules is the input object itself when nothing moved.
        """
        corrections: List[Correction] = []

        if isinstance(rules, SignalTemplateRules):
            conditions = self._correct_list("signalConditions", None, rules.signal_conditions, corrections)
            corrected: Rules = rules
            if conditions is not rules.signal_conditions:
                corrected = rules.model_copy(update={"signal_conditions": conditions})
            return CorrectionReport(rules=corrected, corrections=corrections)

        updates = {}
        for attr, wire in STEP_LISTS:
            steps: List[StrategyStep] = getattr(rules, attr)
            new_steps = []
            for step in steps:
                conditions = self._correct_list(wire, step.order, step.conditions, corrections)
                if conditions is step.conditions:
                    new_steps.append(step)
                else:
                    new_steps.append(step.model_copy(update={"conditions": conditions}))
            if any(new is not old for new, old in zip(new_steps, steps)):
                updates[attr] = new_steps

        corrected = rules.model_copy(update=updates) if updates else rules
        return CorrectionReport(rules=corrected, corrections=corrections)

    def _correct_list(
        self,
        list_name: str,
        step_order: Optional[int],
        conditions: List[StepCondition],
        corrections: List[Correction],
    ) -> List[StepCondition]:
        """Correct one condition list; returns the same list object when unchanged."""
        result: List[StepCondition] = []
        changed = False
        for condition in conditions:
            fixed, move = correct_condition(condition)
            result.append(fixed)
            if move is None:
                continue
            changed = True
            source, target = move
            corrections.append(
                Correction(
                    list_name=list_name,
                    step_order=step_order,
                    condition_id=condition.id,
                    source=source,
                    target=target,
                )
            )
            logger.info(
                "condition_auto_corrected",
                list_name=list_name,
                step_order=step_order,
                condition_id=condition.id,
                kind=condition.kind.value,
                source=source,
                target=target,
            )
        return result if changed else conditions
