"""
PURPOSE: Select concrete generation backends from configuration at start-up.

The provider (gemini | openai | bedrock) is chosen once from AI_PROVIDER; the two
tiers differ only in model. Pipeline code never inspects provider types.

CALLED BY: main.py lifespan, worker.py
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from template_engine.config.settings import Settings
from template_engine.template_builder.backends.base import GenerationBackend
from template_engine.template_builder.backends.bedrock import BedrockBackend
from template_engine.template_builder.backends.gemini import GeminiBackend
from template_engine.template_builder.backends.openai_compat import OpenAICompatibleBackend
from template_engine.utils.logger import get_logger

logger = get_logger("template_builder.backends.factory")

SUPPORTED_PROVIDERS = ("gemini", "openai", "bedrock")


@dataclass
class BackendPair:
    """Extraction-tier (fast, cheap) and generation-tier (strong) backends."""

    extraction: GenerationBackend
    generation: GenerationBackend

    async def close(self) -> None:
        await self.extraction.close()
        if self.generation is not self.extraction:
            await self.generation.close()


def build_backend(settings: Settings, model: str, client: Optional[httpx.AsyncClient] = None) -> GenerationBackend:
    """
    PURPOSE: Build one backend for the configured provider.

    Args:
        settings: Application settings
        model: Model name for this tier
        client: Optional shared httpx client

    Returns:
        GenerationBackend: Configured provider instance.

    Raises:
        ValueError: If AI_PROVIDER names an unknown provider.
    """
    provider = settings.AI_PROVIDER.strip().lower()
    if provider == "gemini":
        return GeminiBackend(
            api_key=settings.GEMINI_API_KEY,
            model=model,
            base_url=settings.GEMINI_BASE_URL,
            client=client,
        )
    if provider == "openai":
        return OpenAICompatibleBackend(
            api_key=settings.OPENAI_API_KEY,
            model=model,
            base_url=settings.OPENAI_BASE_URL,
            client=client,
        )
    if provider == "bedrock":
        return BedrockBackend(
            api_key=settings.BEDROCK_API_KEY,
            model=model,
            region=settings.BEDROCK_REGION,
            base_url=settings.BEDROCK_BASE_URL or None,
            client=client,
        )
    raise ValueError(
        f"Unsupported AI_PROVIDER '{settings.AI_PROVIDER}'. "
        f"Expected one of: {', '.join(SUPPORTED_PROVIDERS)}"
    )


def build_backends(settings: Settings) -> BackendPair:
    """Build the extraction and generation tiers for the configured provider."""
    provider = settings.AI_PROVIDER.strip().lower()
    if provider == "openai":
        extraction_model, generation_model = settings.OPENAI_EXTRACTION_MODEL, settings.OPENAI_MODEL
    elif provider == "bedrock":
        extraction_model, generation_model = settings.BEDROCK_EXTRACTION_MODEL, settings.BEDROCK_MODEL
    else:
        extraction_model, generation_model = settings.GEMINI_EXTRACTION_MODEL, settings.GEMINI_MODEL

    pair = BackendPair(
        extraction=build_backend(settings, extraction_model),
        generation=build_backend(settings, generation_model),
    )
    logger.info(
        "generation_backends_configured",
        provider=provider,
        extraction_model=extraction_model,
        generation_model=generation_model,
    )
    return pair
