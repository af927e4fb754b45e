"""
PURPOSE: Phase 3 prompt assembly for extraction and template generation.

Only the resolved indicators' snippets are embedded, so the model is never
shown (and never tempted by) indicators the conversation did not choose.
The prose itself lives in template_builder/prompts.py.

CALLED BY:
    - template_builder/pipeline.py
    - template_builder/extractor.py
"""

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, List

from template_engine.config.constants import SUPPORTED_INDICATORS
from template_engine.schemas.indicator import IndicatorDefinition
from template_engine.template_builder import prompts

if TYPE_CHECKING:
    from template_engine.template_builder.result import GenerationRequest


@dataclass(frozen=True)
class ComposedPrompt:
    """System instruction plus user prompt for one generation call."""

    system_instruction: str
    prompt: str


def _generated_block(definition: IndicatorDefinition) -> str:
    """Prompt block for a definition without a stored snippet."""
    example_id = definition.example_id or definition.type
    parameters = {name: param.to_payload() for name, param in definition.parameter_schema.items()}
    return (
        f'- {definition.display_name.upper()}: id="{example_id}", type="{definition.type.upper()}"\n'
        f"    parameters={json.dumps(parameters)}"
    )


class PromptComposer:
    """
    PURPOSE: Build prompts from resolved definitions and request metadata.

    Stateless; one instance can be shared by concurrent runs.
    """

    def build_indicator_section(self, definitions: Iterable[IndicatorDefinition]) -> str:
        """
        PURPOSE: Render the AVAILABLE INDICATORS body.

        Args:
            definitions: Resolved definitions

        Returns:
            str: One block per definition, ordered by sort_order, separated by a blank line.
        """
        blocks: List[str] = []
        for definition in sorted(definitions, key=lambda d: (d.sort_order, d.type)):
            snippet = definition.prompt_snippet.strip()
            blocks.append(snippet if snippet else _generated_block(definition))
        return "\n\n".join(blocks)

    def compose_extraction(self, conversation_text: str) -> str:
        """Build the indicator extraction prompt with the closed allowed-key list."""
        allowed = "\n".join(
            prompts.EXTRACTION_ALLOWED_LINE_TEMPLATE.format(key=key, description=description)
            for key, description in SUPPORTED_INDICATORS.items()
        )
        return prompts.EXTRACTION_PROMPT_TEMPLATE.format(
            conversation=conversation_text,
            allowed_indicators=allowed,
        )

    def compose_stepwise(
        self,
        request: "GenerationRequest",
        definitions: Iterable[IndicatorDefinition],
    ) -> ComposedPrompt:
        """
        PURPOSE: Build the stepwise (T1 -> T2 -> T3) generation prompt.

        Args:
            request: Template metadata and conversation text
            definitions: Resolved indicator definitions

        Returns:
            ComposedPrompt: System instruction and prompt body.
        """
        header = prompts.STEPWISE_HEADER_TEMPLATE.format(
            conversation=request.conversation,
            name=request.name,
            description=request.description,
            category=request.category,
        )
        sections = [
            header,
            self._indicator_block(definitions),
            prompts.ID_NAMING_RULES,
            prompts.CONDITION_GRAMMAR,
            prompts.STEPWISE_JSON_SCHEMA,
            prompts.WORKED_EXAMPLES,
            prompts.UNSUPPORTED_INDICATOR_RULE,
            prompts.STEPWISE_RULES,
        ]
        return ComposedPrompt(
            system_instruction=prompts.STEPWISE_SYSTEM_INSTRUCTION,
            prompt="\n\n".join(sections),
        )

    def compose_signal(
        self,
        request: "GenerationRequest",
        definitions: Iterable[IndicatorDefinition],
    ) -> ComposedPrompt:
        """Build the flat signal-template prompt for one direction and timeframe."""
        header = prompts.SIGNAL_HEADER_TEMPLATE.format(
            conversation=request.conversation,
            name=request.name,
            description=request.description,
            category=request.category,
            direction=(request.direction or "").lower(),
            timeframe=request.timeframe or "",
        )
        sections = [
            header,
            self._indicator_block(definitions),
            prompts.ID_NAMING_RULES,
            prompts.CONDITION_GRAMMAR,
            prompts.SIGNAL_JSON_SCHEMA,
            prompts.WORKED_EXAMPLES,
            prompts.UNSUPPORTED_INDICATOR_RULE,
            prompts.SIGNAL_RULES,
        ]
        return ComposedPrompt(
            system_instruction=prompts.SIGNAL_SYSTEM_INSTRUCTION,
            prompt="\n\n".join(sections),
        )

    def _indicator_block(self, definitions: Iterable[IndicatorDefinition]) -> str:
        return prompts.AVAILABLE_INDICATORS_HEADER + "\n" + self.build_indicator_section(definitions)
