"""
PURPOSE: End-to-end tests for TemplatePipeline with scripted backends.

Covers the generation scenarios:
- A: RSI-only conversation yields an RSI-only prompt and template
- B: fenced output is sanitized and parses like unfenced output
- C: misplaced crossover operand is auto-corrected
- D: MACD self-comparison is rejected, never repaired
- E: generation timeout is a retryable backend failure
plus unsupported-indicator refusals, authorization and malformed output.
"""

import json

import pytest

from template_engine.catalog.fallback import FALLBACK_DEFINITIONS
from template_engine.config.constants import TemplateType
from template_engine.schemas.rules import SignalTemplateRules, TemplateRules
from template_engine.template_builder.backends.base import BackendError
from template_engine.template_builder.backends.factory import BackendPair
from template_engine.template_builder.pipeline import build_pipeline
from template_engine.template_builder.result import (
    FailureKind,
    GenerationRequest,
    PipelineFailure,
    PipelineStage,
    PipelineSuccess,
)
from conftest import RSI_CONVERSATION, FakeBackend


def _run_setup(test_settings, extraction_replies, generation_replies, catalog=None):
    extraction = FakeBackend(extraction_replies)
    generation = FakeBackend(generation_replies)
    pipeline = build_pipeline(BackendPair(extraction, generation), catalog, settings=test_settings)
    return pipeline, extraction, generation


def _request(**overrides) -> GenerationRequest:
    fields = {"conversation": RSI_CONVERSATION, "name": "RSI Reversal", "description": "RSI only"}
    fields.update(overrides)
    return GenerationRequest(**fields)


class TestSuccessfulRuns:
    """Pipelines that end in PipelineSuccess."""

    async def test_scenario_a_rsi_only(self, test_settings, stepwise_json):
        """Extraction ["rsi"] limits the prompt to RSI and price."""
        pipeline, extraction, generation = _run_setup(test_settings, ['["rsi"]'], [stepwise_json])

        outcome = await pipeline.run(_request())

        assert isinstance(outcome, PipelineSuccess)
        assert outcome.ok is True
        assert outcome.stage == PipelineStage.PERSISTED
        assert isinstance(outcome.rules, TemplateRules)
        assert [d.type for d in outcome.indicators] == ["price", "rsi"]

        prompt = generation.calls[0]["prompt"]
        assert FALLBACK_DEFINITIONS["rsi"].prompt_snippet in prompt
        assert FALLBACK_DEFINITIONS["macd"].prompt_snippet not in prompt
        assert len(extraction.calls) == 1

    async def test_generation_call_uses_settings(self, test_settings, stepwise_json):
        """Temperature, token budget and timeout come from settings."""
        pipeline, _, generation = _run_setup(test_settings, ['["rsi"]'], [stepwise_json])
        await pipeline.run(_request())

        call = generation.calls[0]
        assert call["temperature"] == test_settings.GENERATION_TEMPERATURE
        assert call["max_tokens"] == test_settings.GENERATION_MAX_TOKENS
        assert call["timeout"] == test_settings.GENERATION_TIMEOUT_SECONDS
        assert call["system_instruction"]

    async def test_scenario_b_fenced_output(self, test_settings, stepwise_json):
        """```json fences are stripped before parsing."""
        fenced = f"```json\n{stepwise_json}\n```"
        pipeline, _, _ = _run_setup(test_settings, ['["rsi"]', '["rsi"]'], [fenced, stepwise_json])

        fenced_outcome = await pipeline.run(_request())
        plain_outcome = await pipeline.run(_request())

        assert fenced_outcome.ok and plain_outcome.ok
        assert fenced_outcome.rules.to_payload() == plain_outcome.rules.to_payload()

    async def test_scenario_c_auto_correction(self, test_settings, stepwise_payload):
        """Crossover with the first operand in indicator is moved to indicator1."""
        cross = stepwise_payload["longEntrySteps"][1]["conditions"][0]
        cross["indicator"], cross["indicator1"] = "ema_20", None
        cross["indicator2"] = "rsi_14"

        pipeline, _, _ = _run_setup(test_settings, ['["rsi", "ema"]'], [json.dumps(stepwise_payload)])
        outcome = await pipeline.run(_request())

        assert isinstance(outcome, PipelineSuccess)
        fixed = outcome.rules.long_entry_steps[1].conditions[0]
        assert (fixed.indicator1, fixed.indicator2, fixed.indicator) == ("ema_20", "rsi_14", None)
        assert [(c.source, c.target) for c in outcome.corrections] == [("indicator", "indicator1")]

    async def test_extraction_failure_still_generates(self, test_settings, stepwise_json):
        """An extraction outage degrades to ["price"] and generation continues."""
        pipeline, _, generation = _run_setup(
            test_settings, [BackendError(503, "overloaded")], [stepwise_json]
        )
        outcome = await pipeline.run(_request())

        assert outcome.ok
        assert [d.type for d in outcome.indicators] == ["price"]
        assert len(generation.calls) == 1

    async def test_signal_template(self, test_settings, signal_payload):
        """Signal requests parse into SignalTemplateRules."""
        pipeline, _, generation = _run_setup(test_settings, ['["ema"]'], [json.dumps(signal_payload)])
        request = _request(template_type=TemplateType.SIGNAL, direction="bullish", timeframe="4h")

        outcome = await pipeline.run(request)

        assert isinstance(outcome, PipelineSuccess)
        assert isinstance(outcome.rules, SignalTemplateRules)
        assert 'Direction: "bullish"' in generation.calls[0]["prompt"]


class TestFailedRuns:
    """Pipelines that end in PipelineFailure."""

    async def test_scenario_d_macd_self_comparison(self, test_settings, stepwise_payload):
        """indicator1 == indicator2 fails integrity; nothing is invented."""
        stepwise_payload["indicators"].append({"id": "macd_12_26_9", "type": "MACD", "parameters": {}})
        cond = stepwise_payload["longEntrySteps"][1]["conditions"][0]
        cond["indicator1"] = cond["indicator2"] = "macd_12_26_9"

        pipeline, _, _ = _run_setup(test_settings, ['["macd"]'], [json.dumps(stepwise_payload)])
        outcome = await pipeline.run(_request())

        assert isinstance(outcome, PipelineFailure)
        assert outcome.kind == FailureKind.PERMANENT_VALIDATION
        assert outcome.stage == PipelineStage.VALIDATING
        assert "DANGLING_REFERENCE" in outcome.message
        assert outcome.retryable is False

    async def test_scenario_e_generation_timeout(self, test_settings):
        """A generation call slower than the timeout is retryable."""
        assert test_settings.GENERATION_TIMEOUT_SECONDS == 0.2
        pipeline, _, _ = _run_setup(test_settings, ['["rsi"]'], [1.0])

        outcome = await pipeline.run(_request())

        assert isinstance(outcome, PipelineFailure)
        assert outcome.kind == FailureKind.RETRYABLE_BACKEND
        assert outcome.stage == PipelineStage.GENERATING
        assert outcome.status is None
        assert outcome.retryable is True
        assert "timed out" in outcome.message

    @pytest.mark.parametrize("status", [401, 403])
    async def test_authorization_failure(self, test_settings, status):
        """Rejected credentials are not retryable."""
        pipeline, _, _ = _run_setup(test_settings, ['["rsi"]'], [BackendError(status, "invalid api key")])
        outcome = await pipeline.run(_request())

        assert outcome.kind == FailureKind.AUTHORIZATION
        assert outcome.status == status
        assert outcome.retryable is False

    async def test_provider_error_retryable(self, test_settings):
        """5xx and rate limits are retryable backend failures."""
        pipeline, _, _ = _run_setup(test_settings, ['["rsi"]'], [BackendError(429, "rate limited")])
        outcome = await pipeline.run(_request())
        assert outcome.kind == FailureKind.RETRYABLE_BACKEND
        assert outcome.status == 429

    async def test_unsupported_indicator_refusal(self, test_settings):
        """{"error": true} replies become UNSUPPORTED_INDICATOR failures."""
        refusal = json.dumps(
            {
                "error": True,
                "message": "Heikin Ashi is not supported.",
                "unsupportedIndicators": ["Heikin Ashi"],
                "suggestedAlternatives": ["ema"],
            }
        )
        pipeline, _, _ = _run_setup(test_settings, ['["price"]'], [refusal])
        outcome = await pipeline.run(_request())

        assert outcome.kind == FailureKind.UNSUPPORTED_INDICATOR
        assert outcome.message == "Heikin Ashi is not supported."
        assert outcome.rejection.unsupported_indicators == ["Heikin Ashi"]
        assert outcome.retryable is False

    async def test_malformed_output(self, test_settings):
        """Prose with no JSON is a permanent validation failure."""
        pipeline, _, _ = _run_setup(test_settings, ['["rsi"]'], ["Sorry, I cannot do that."])
        outcome = await pipeline.run(_request())

        assert outcome.kind == FailureKind.PERMANENT_VALIDATION
        assert "MALFORMED_OUTPUT" in outcome.message

    async def test_incomplete_output(self, test_settings, stepwise_payload):
        """A template missing a step list fails as INCOMPLETE_TEMPLATE."""
        del stepwise_payload["shortExitSteps"]
        pipeline, _, _ = _run_setup(test_settings, ['["rsi"]'], [json.dumps(stepwise_payload)])
        outcome = await pipeline.run(_request())

        assert outcome.kind == FailureKind.PERMANENT_VALIDATION
        assert "INCOMPLETE_TEMPLATE" in outcome.message

    async def test_signal_direction_mismatch(self, test_settings, signal_payload):
        """A bearish template for a bullish request is rejected."""
        signal_payload["direction"] = "bearish"
        pipeline, _, _ = _run_setup(test_settings, ['["ema"]'], [json.dumps(signal_payload)])
        request = _request(template_type=TemplateType.SIGNAL, direction="bullish", timeframe="4h")

        outcome = await pipeline.run(request)

        assert isinstance(outcome, PipelineFailure)
        assert outcome.kind == FailureKind.PERMANENT_VALIDATION
        assert outcome.stage == PipelineStage.VALIDATING
        assert "DIRECTION_MISMATCH" in outcome.message
