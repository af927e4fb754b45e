"""
Rule-structure Pydantic schemas for generated strategy templates.

Defines the typed shape of what the generation backend must produce:
indicator instances, step conditions, ordered strategy steps and the two
template variants (stepwise and signal). JSON uses camelCase keys; Python
attributes are snake_case. Models accept either and serialize by alias.

CALLED BY:
    - template_builder/validator.py (parsing backend output)
    - template_builder/corrector.py (typed correction walk)
    - services/template_service.py (persisting the rules payload)
"""

from typing import Any, ClassVar, Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from template_engine.config.constants import ConditionKind, SignalDirection, STEP_LISTS


def is_filled(value: Any) -> bool:
    """True when a reference field carries a usable (non-blank) value."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


class RulesModel(BaseModel):
    """Shared configuration for every wire-facing rules model."""

    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the JSON-ready camelCase payload that gets persisted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ParameterDefinition(RulesModel):
    """
    Configurable parameter definition (not a raw value).

    Attributes:
        type: Value type (number, string, boolean)
        label: Human label shown to the user
        min: Lower bound for numeric parameters
        max: Upper bound for numeric parameters
        default: Default value (wire key: defaultValue)
        step: Increment for numeric inputs
        options: Allowed values for enumerated parameters
        required: Whether the user must supply a value
        description: Free-text help
    """

    type: str = "number"
    label: Optional[str] = None
    min: Optional[Union[int, float]] = None
    max: Optional[Union[int, float]] = None
    default: Optional[Union[int, float, bool, str]] = Field(default=None, alias="defaultValue")
    step: Optional[Union[int, float]] = None
    options: Optional[List[Union[int, float, str]]] = None
    required: bool = True
    description: Optional[str] = None


class Indicator(RulesModel):
    """
    One configured indicator instance inside a template.

    Multiple instances of the same type carry distinct ids (e.g. ema_20, ema_50).
    """

    id: str
    type: str
    label: Optional[str] = None
    parameters: Dict[str, ParameterDefinition] = Field(default_factory=dict)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Reject blank indicator ids."""
        if not v.strip():
            raise ValueError("indicator id must not be blank")
        return v


class StepCondition(RulesModel):
    """
    A single condition inside a step.

    For above/below: indicator + value are set, indicator1/indicator2 are null.
    For crossover/crossunder: indicator1 + indicator2 are set, indicator/value are null.
    """

    id: Optional[str] = None
    kind: ConditionKind = Field(alias="type")
    description: Optional[str] = None
    indicator: Optional[str] = None
    value: Optional[Union[int, float, str]] = None
    indicator1: Optional[str] = None
    indicator2: Optional[str] = None
    parameters: Optional[Dict[str, ParameterDefinition]] = None
    label: Optional[str] = None

    @field_validator("kind", mode="before")
    @classmethod
    def normalise_kind(cls, v: Any) -> Any:
        """Accept kinds in any letter case."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    def references(self) -> List[str]:
        """Indicator ids referenced by whichever fields are populated."""
        return [ref for ref in (self.indicator, self.indicator1, self.indicator2) if is_filled(ref)]


class StrategyStep(RulesModel):
    """One sequential step (T1, T2, T3...) of AND-combined conditions."""

    order: int = Field(alias="stepOrder")
    name: str = Field(default="", alias="stepName")
    description: Optional[str] = None
    conditions: List[StepCondition] = Field(default_factory=list)
    mandatory: bool = Field(default=True, alias="isMandatory")
    ai_suggestion: Optional[str] = Field(default=None, alias="aISuggestion")


class TemplateRules(RulesModel):
    """
    Stepwise template: indicators plus four ordered step lists.

    Top-level keys are matched case-insensitively so PascalCase list names
    (LongEntrySteps) parse the same as camelCase ones (longEntrySteps).
    """

    name: str = ""
    description: Optional[str] = None
    version: str = "1.0"
    category: Optional[str] = None
    indicators: List[Indicator]
    long_entry_steps: List[StrategyStep] = Field(alias="longEntrySteps")
    long_exit_steps: List[StrategyStep] = Field(alias="longExitSteps")
    short_entry_steps: List[StrategyStep] = Field(alias="shortEntrySteps")
    short_exit_steps: List[StrategyStep] = Field(alias="shortExitSteps")

    REQUIRED_KEYS: ClassVar[Tuple[str, ...]] = ("indicators",) + tuple(wire for _, wire in STEP_LISTS)

    @model_validator(mode="before")
    @classmethod
    def canonicalise_keys(cls, data: Any) -> Any:
        """Rename top-level keys to their canonical camelCase spelling."""
        if isinstance(data, dict):
            return canonical_keys(data, cls.known_keys())
        return data

    @classmethod
    def known_keys(cls) -> List[str]:
        return [field.alias or name for name, field in cls.model_fields.items()]

    def step_lists(self) -> Iterator[Tuple[str, List[StrategyStep]]]:
        """Yield (wire name, steps) for the four lists in a fixed order."""
        for attr, wire in STEP_LISTS:
            yield wire, getattr(self, attr)

    def iter_conditions(self) -> Iterator[Tuple[str, Optional[int], StepCondition]]:
        """Yield (list name, step order, condition) for every condition."""
        for wire, steps in self.step_lists():
            for step in steps:
                for condition in step.conditions:
                    yield wire, step.order, condition


class SignalTemplateRules(RulesModel):
    """
    Higher-timeframe signal template: one flat list of simultaneous
    conditions and a single directional bias.
    """

    name: str = ""
    description: Optional[str] = None
    version: str = "1.0"
    category: Optional[str] = None
    direction: SignalDirection
    timeframe: Optional[str] = None
    indicators: List[Indicator]
    signal_conditions: List[StepCondition] = Field(alias="signalConditions")

    REQUIRED_KEYS: ClassVar[Tuple[str, ...]] = ("indicators", "signalConditions", "direction")

    @field_validator("direction", mode="before")
    @classmethod
    def normalise_direction(cls, v: Any) -> Any:
        """Accept Bullish/BULLISH as well as bullish."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @model_validator(mode="before")
    @classmethod
    def canonicalise_keys(cls, data: Any) -> Any:
        """Rename top-level keys to their canonical camelCase spelling."""
        if isinstance(data, dict):
            return canonical_keys(data, cls.known_keys())
        return data

    @classmethod
    def known_keys(cls) -> List[str]:
        return [field.alias or name for name, field in cls.model_fields.items()]

    def iter_conditions(self) -> Iterator[Tuple[str, Optional[int], StepCondition]]:
        for condition in self.signal_conditions:
            yield "signalConditions", None, condition


def canonical_keys(payload: Dict[str, Any], known: List[str]) -> Dict[str, Any]:
    """
    Return a copy of payload whose keys matching a known key case-insensitively
    are renamed to the known spelling. Unknown keys are kept as-is.
    """
    lookup = {key.lower(): key for key in known}
    result: Dict[str, Any] = {}
    for key, value in payload.items():
        canonical = lookup.get(key.lower(), key) if isinstance(key, str) else key
        # An exact-case key wins over a differently-cased duplicate
        if canonical in result and key != canonical:
            continue
        result[canonical] = value
    return result


class UnsupportedIndicatorRejection(RulesModel):
    """
    Structured refusal returned instead of a template when the conversation
    insists on an indicator outside the supported set.
    """

    error: bool = True
    message: str
    unsupported_indicators: List[str] = Field(default_factory=list, alias="unsupportedIndicators")
    suggested_alternatives: List[str] = Field(default_factory=list, alias="suggestedAlternatives")
