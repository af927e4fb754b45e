"""
Indicator catalog Pydantic schemas.

IndicatorDefinition is the immutable value handed from the catalog to the
prompt composer. IndicatorDefinitionUpsert is the request body accepted by
the catalog write endpoint.
"""

from datetime import datetime
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from template_engine.schemas.rules import ParameterDefinition


class IndicatorDefinition(BaseModel):
    """
    Catalog definition of one indicator type.

    Attributes:
        type: Lowercase canonical key (unique), e.g. "rsi"
        display_name: Human name, e.g. "RSI"
        category: Grouping such as momentum or trend
        description: Free-text description
        example_id: Example instance id used when no prompt snippet exists
        parameter_schema: Parameter name -> definition
        prompt_snippet: Pre-rendered prompt text describing usage
        aliases: Alternate names used by keyword fallback matching
        keywords: Extra phrases used by keyword fallback matching
        active: Whether the definition is offered to prompts
        sort_order: Position inside the composed indicator section
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    type: str
    display_name: str
    category: str = ""
    description: Optional[str] = None
    example_id: str = ""
    parameter_schema: Dict[str, ParameterDefinition] = Field(default_factory=dict)
    prompt_snippet: str = ""
    aliases: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    active: bool = True
    sort_order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        """Normalise the key to lowercase and reject blanks."""
        key = v.strip().lower()
        if not key:
            raise ValueError("indicator type must not be blank")
        return key


class IndicatorDefinitionUpsert(BaseModel):
    """Request body for creating or replacing a catalog definition."""

    display_name: str = Field(..., min_length=1, max_length=100)
    category: str = Field(default="", max_length=50)
    description: Optional[str] = None
    example_id: str = Field(default="", max_length=100)
    parameter_schema: Dict[str, ParameterDefinition] = Field(default_factory=dict)
    prompt_snippet: str = ""
    aliases: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    active: bool = True
    sort_order: int = 0

    def to_definition(self, indicator_type: str) -> IndicatorDefinition:
        """Bind the request body to the path key."""
        return IndicatorDefinition(type=indicator_type, **self.model_dump())
