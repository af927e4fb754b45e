"""
PURPOSE: Integration tests for Pydantic schemas.

Tests validation of template engine models:
- Generation requests with type and direction validation
- Template responses with ORM compatibility
- Rules payload serialization by alias
- Conversation summary rendering
"""

import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError

from template_engine.config.constants import SignalDirection, TemplateType
from template_engine.models.template import Template
from template_engine.schemas.rules import ParameterDefinition, StepCondition, TemplateRules
from template_engine.schemas.template import (
    ConversationMessage,
    GenerateTemplateRequest,
    GenerationAccepted,
    GenerationJob,
    TemplateResponse,
)
from template_engine.template_builder.conversation import SUMMARY_HEADER, build_conversation_summary


class TestGenerateTemplateRequest:
    """Test GenerateTemplateRequest Pydantic schema."""

    def test_defaults(self, conversation_messages):
        """Test an execution request with only the required fields."""
        request = GenerateTemplateRequest(name="RSI Reversal", messages=conversation_messages)
        assert request.template_type == TemplateType.EXECUTION
        assert request.category == "Custom"
        assert request.direction is None
        assert request.messages[0].role == "user"

    def test_signal_requires_direction(self, conversation_messages):
        """Test that signal templates need a direction."""
        with pytest.raises(ValidationError) as exc_info:
            GenerateTemplateRequest(name="Bias", template_type="signal", messages=conversation_messages)
        assert "direction is required for signal templates" in str(exc_info.value)

    def test_enum_case_insensitive(self, conversation_messages):
        """Test that type and direction are normalized to lowercase."""
        request = GenerateTemplateRequest(
            name="Bias", template_type="Signal", direction="BEARISH", messages=conversation_messages
        )
        assert request.template_type == TemplateType.SIGNAL
        assert request.direction == SignalDirection.BEARISH

    def test_invalid_direction(self, conversation_messages):
        """Test invalid direction value."""
        with pytest.raises(ValidationError):
            GenerateTemplateRequest(
                name="Bias", template_type="signal", direction="sideways", messages=conversation_messages
            )

    def test_messages_required(self):
        """Test that an empty conversation is rejected."""
        with pytest.raises(ValidationError):
            GenerateTemplateRequest(name="Empty", messages=[])

    def test_blank_name_rejected(self, conversation_messages):
        """Test with an empty name."""
        with pytest.raises(ValidationError):
            GenerateTemplateRequest(name="", messages=conversation_messages)


class TestGenerationJob:
    """Test the queued job payload."""

    def test_json_round_trip(self, conversation_messages):
        """Test that a job survives the queue's JSON encoding."""
        job = GenerationJob(
            template_id="tpl-1",
            owner="alice",
            name="RSI",
            direction="bullish",
            messages=conversation_messages,
        )
        restored = GenerationJob.model_validate_json(job.model_dump_json())
        assert restored == job
        assert restored.attempt == 1


class TestResponses:
    """Test response schemas."""

    def test_generation_accepted_alias(self):
        """Test that the accepted response serializes templateId."""
        accepted = GenerationAccepted(template_id="tpl-1", status="generating")
        assert accepted.model_dump(by_alias=True, mode="json") == {
            "templateId": "tpl-1",
            "status": "generating",
        }

    def test_template_response_from_orm(self):
        """Test building a response from an ORM row."""
        now = datetime.now(timezone.utc)
        template = Template(
            id="tpl-1",
            owner="alice",
            name="RSI",
            category="Custom",
            template_type="execution",
            status="active",
            is_stepwise=True,
            rules={"indicators": []},
            created_at=now,
            updated_at=now,
        )
        response = TemplateResponse.model_validate(template)
        assert response.id == "tpl-1"
        assert response.rules == {"indicators": []}
        assert response.error_message is None


class TestRulesSchema:
    """Test rules models."""

    def test_parameter_default_alias(self):
        """Test that default is read and written as defaultValue."""
        param = ParameterDefinition.model_validate({"type": "number", "defaultValue": 14})
        assert param.default == 14
        assert param.to_payload()["defaultValue"] == 14

    def test_condition_type_alias(self):
        """Test that kind is exposed on the wire as type."""
        cond = StepCondition(id="c1", kind="above", indicator="rsi_14", value=70)
        payload = cond.to_payload()
        assert payload["type"] == "above"
        assert "indicator1" not in payload

    def test_condition_value_may_be_string(self):
        """Test string threshold values (e.g. a parameter reference)."""
        cond = StepCondition.model_validate({"type": "below", "indicator": "rsi_14", "value": "30"})
        assert cond.value == "30"

    def test_serialization_uses_camel_case(self, stepwise_payload):
        """Test that persisted payloads keep camelCase keys."""
        payload = TemplateRules.model_validate(stepwise_payload).to_payload()
        assert set(payload) >= {"indicators", "longEntrySteps", "longExitSteps", "shortEntrySteps", "shortExitSteps"}
        step = payload["longEntrySteps"][0]
        assert step["stepOrder"] == 1
        assert step["isMandatory"] is True


class TestConversationSummary:
    """Test build_conversation_summary()."""

    def test_ordered_by_timestamp(self):
        """Test that turns render oldest first with uppercase roles."""
        start = datetime(2026, 1, 5, tzinfo=timezone.utc)
        messages = [
            ConversationMessage(role="assistant", content="Use RSI 14.", timestamp=start + timedelta(seconds=5)),
            ConversationMessage(role="User", content="What should I use?", timestamp=start),
        ]
        summary = build_conversation_summary(messages)
        assert summary == (
            SUMMARY_HEADER
            + "USER: What should I use?\n\n"
            + "ASSISTANT: Use RSI 14.\n\n"
        )

    def test_naive_and_aware_timestamps_sort_together(self):
        """Test that a naive timestamp is read as UTC and sorts beside aware ones."""
        naive = ConversationMessage(role="user", content="First", timestamp="2026-01-05T09:00:00")
        aware = ConversationMessage(
            role="assistant",
            content="Second",
            timestamp=datetime(2026, 1, 5, 9, 0, 5, tzinfo=timezone.utc),
        )
        assert naive.timestamp.tzinfo is not None
        summary = build_conversation_summary([aware, naive])
        assert summary == SUMMARY_HEADER + "USER: First\n\n" + "ASSISTANT: Second\n\n"

    def test_default_timestamp_beside_naive(self):
        """Test that a defaulted (aware) timestamp compares with a naive one."""
        messages = [
            ConversationMessage(role="user", content="Old", timestamp="2020-01-01T00:00:00"),
            ConversationMessage(role="user", content="Now"),
        ]
        assert build_conversation_summary(messages).endswith("USER: Old\n\nUSER: Now\n\n")

    def test_empty_conversation(self):
        """Test that no messages yields only the header."""
        assert build_conversation_summary([]) == SUMMARY_HEADER
