"""
PURPOSE: OpenAI-compatible chat completions backend.

Works with any endpoint speaking the chat completions protocol (OpenAI,
Z.AI, local gateways) so the provider can change without touching the
pipeline.
"""

from typing import Any, Dict, List, Optional

import httpx

from template_engine.template_builder.backends.base import BackendError, GenerationBackend
from template_engine.utils.logger import get_logger

logger = get_logger("template_builder.backends.openai")


class OpenAICompatibleBackend(GenerationBackend):
    """
    PURPOSE: Generate completions through a chat completions endpoint.

    CALLED BY: backends/factory.py when AI_PROVIDER=openai
    """

    provider = "openai"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.openai.com/v1/chat/completions",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(model, client)
        self._api_key = api_key
        self._base_url = base_url

    async def complete(
        self,
        prompt: str,
        *,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        timeout: float = 240.0,
    ) -> str:
        messages: List[Dict[str, str]] = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})

        body: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            body["max_tokens"] = max_tokens

        response = await self._post(
            self._base_url,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            json=body,
        )

        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(response.status_code, "provider returned a non-JSON body") from e

        choices = (data.get("choices") or []) if isinstance(data, dict) else []
        if not choices:
            raise BackendError(None, "provider response had no choices")
        first_choice = choices[0] if isinstance(choices[0], dict) else {}
        message_obj = first_choice.get("message", {})
        content = message_obj.get("content") if isinstance(message_obj, dict) else None
        content_str = str(content or "").strip()
        if not content_str:
            # Reasoning models may put the answer in reasoning_content
            reasoning = message_obj.get("reasoning_content") if isinstance(message_obj, dict) else None
            content_str = str(reasoning or "").strip()
        if not content_str:
            raise BackendError(None, "provider returned an empty completion")

        logger.info(
            "llm_call_success",
            provider=self.provider,
            model=self.model,
            tokens=(data.get("usage") or {}).get("total_tokens", 0),
            chars=len(content_str),
        )
        return content_str
