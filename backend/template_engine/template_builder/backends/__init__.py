"""
PURPOSE: Generation backend implementations behind one completion contract.
"""

from template_engine.template_builder.backends.base import BackendError, GenerationBackend
from template_engine.template_builder.backends.bedrock import BedrockBackend
from template_engine.template_builder.backends.factory import BackendPair, build_backend, build_backends
from template_engine.template_builder.backends.gemini import GeminiBackend
from template_engine.template_builder.backends.openai_compat import OpenAICompatibleBackend

__all__ = [
    "BackendError",
    "BackendPair",
    "BedrockBackend",
    "GeminiBackend",
    "GenerationBackend",
    "OpenAICompatibleBackend",
    "build_backend",
    "build_backends",
]
