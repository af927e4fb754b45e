"""
PURPOSE: Google Gemini generateContent backend.

Sends the prompt as a single user part, the system instruction as
systemInstruction, and reads candidates[0].content.parts[*].text.
"""

from typing import Any, Dict, Optional

import httpx

from template_engine.template_builder.backends.base import BackendError, GenerationBackend
from template_engine.utils.logger import get_logger

logger = get_logger("template_builder.backends.gemini")


class GeminiBackend(GenerationBackend):
    """
    PURPOSE: Generate completions through the Gemini REST API.

    CALLED BY: backends/factory.py when AI_PROVIDER=gemini
    """

    provider = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        client: Optional[httpx.AsyncClient] = None,
        top_k: int = 40,
        top_p: float = 0.95,
    ) -> None:
        super().__init__(model, client)
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._top_k = top_k
        self._top_p = top_p

    async def complete(
        self,
        prompt: str,
        *,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        timeout: float = 240.0,
    ) -> str:
        generation_config: Dict[str, Any] = {
            "temperature": temperature,
            "topK": self._top_k,
            "topP": self._top_p,
        }
        if max_tokens:
            generation_config["maxOutputTokens"] = max_tokens

        body: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}

        url = f"{self._base_url}/models/{self.model}:generateContent"
        response = await self._post(
            url,
            timeout=timeout,
            params={"key": self._api_key},
            headers={"Content-Type": "application/json"},
            json=body,
        )

        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(response.status_code, "provider returned a non-JSON body") from e

        candidates = (data.get("candidates") or []) if isinstance(data, dict) else []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason") if isinstance(data, dict) else None
            detail = "no candidates in response"
            if block_reason:
                detail = f"{detail} (blockReason={block_reason})"
            raise BackendError(None, detail)

        parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []
        text = "".join(str(part.get("text") or "") for part in parts if isinstance(part, dict) and not part.get("thought")).strip()
        if not text:
            raise BackendError(None, "provider returned an empty completion")

        usage = data.get("usageMetadata") or {}
        logger.info(
            "llm_call_success",
            provider=self.provider,
            model=self.model,
            tokens=usage.get("totalTokenCount", 0),
            chars=len(text),
        )
        return text
