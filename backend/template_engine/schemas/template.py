"""
Template-related Pydantic schemas for the template engine API.

Handles validation and serialization of generation requests, the queued
generation job payload, template updates and template responses.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from template_engine.config.constants import (
    DEFAULT_CATEGORY,
    SignalDirection,
    TemplateStatus,
    TemplateType,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationMessage(BaseModel):
    """
    One turn of the strategy conversation.

    Attributes:
        role: Speaker role (user / assistant)
        content: Message text
        timestamp: When the message was sent
    """

    role: str = Field(..., min_length=1, max_length=20)
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        """Normalise role to lowercase."""
        return v.strip().lower()

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC so turns always sort together."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class GenerateTemplateRequest(BaseModel):
    """
    Request to generate a template from a strategy conversation.

    Attributes:
        name: Template name
        description: Template description
        category: Template category (default "Custom")
        template_type: execution (stepwise) or signal
        direction: Required for signal templates (bullish / bearish)
        timeframe: Optional higher timeframe for signal templates
        conversation_id: Identifier of the originating conversation
        messages: Conversation turns to analyze
    """

    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    category: str = Field(default=DEFAULT_CATEGORY, max_length=50)
    template_type: TemplateType = TemplateType.EXECUTION
    direction: Optional[SignalDirection] = None
    timeframe: Optional[str] = Field(default=None, max_length=20)
    conversation_id: Optional[str] = Field(default=None, max_length=100)
    messages: List[ConversationMessage] = Field(..., min_length=1)

    @field_validator("template_type", "direction", mode="before")
    @classmethod
    def lowercase_enums(cls, v):
        """Accept enum values in any letter case."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @model_validator(mode="after")
    def validate_signal_direction(self) -> "GenerateTemplateRequest":
        """Signal templates carry exactly one direction."""
        if self.template_type == TemplateType.SIGNAL and self.direction is None:
            raise ValueError("direction is required for signal templates")
        return self


class RegenerateTemplateRequest(BaseModel):
    """Request to re-run generation for an existing template."""

    messages: List[ConversationMessage] = Field(..., min_length=1)
    description: Optional[str] = Field(default=None, max_length=2000)


class GenerationJob(BaseModel):
    """
    Message placed on the generation queue and consumed by the worker.

    attempt counts pipeline runs for this template, starting at 1.
    """

    template_id: str
    conversation_id: Optional[str] = None
    owner: str
    name: str
    description: str = ""
    category: str = DEFAULT_CATEGORY
    template_type: TemplateType = TemplateType.EXECUTION
    direction: Optional[SignalDirection] = None
    timeframe: Optional[str] = None
    messages: List[ConversationMessage]
    attempt: int = 1


class GenerationAccepted(BaseModel):
    """Response returned when a generation request has been accepted."""

    model_config = ConfigDict(populate_by_name=True)

    template_id: str = Field(..., alias="templateId")
    status: TemplateStatus


class TemplateUpdate(BaseModel):
    """
    Schema for updating template metadata.

    Attributes:
        name: Optional new name
        description: Optional new description
        category: Optional new category
        status: Optional new status (draft or active only)
    """

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    category: Optional[str] = Field(default=None, max_length=50)
    status: Optional[TemplateStatus] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[TemplateStatus]) -> Optional[TemplateStatus]:
        """Generation-owned states cannot be set by hand."""
        if v is not None and v not in (TemplateStatus.DRAFT, TemplateStatus.ACTIVE):
            raise ValueError("status must be either draft or active")
        return v


class TemplateResponse(BaseModel):
    """
    Complete template response schema.

    Attributes:
        id: Template identifier
        owner: Owning user, or GLOBAL for shared templates
        name: Template name
        status: draft / generating / active / failed
        rules: Serialized rules payload (camelCase JSON)
        error_message: Failure reason when status is failed
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    owner: str
    name: str
    description: Optional[str] = None
    category: str
    template_type: str
    direction: Optional[str] = None
    timeframe: Optional[str] = None
    status: str
    is_stepwise: bool
    rules: Optional[dict] = None
    conversation_id: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime
