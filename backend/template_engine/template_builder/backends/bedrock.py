"""
PURPOSE: Amazon Bedrock Converse backend.

Calls the bedrock-runtime Converse REST endpoint with a Bedrock API key as a
Bearer token. The model id may be a foundation model id, an inference
profile or a prompt ARN; it is URL-encoded into the path.
"""

from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from template_engine.template_builder.backends.base import BackendError, GenerationBackend
from template_engine.utils.logger import get_logger

logger = get_logger("template_builder.backends.bedrock")


class BedrockBackend(GenerationBackend):
    """
    PURPOSE: Generate completions through Bedrock's Converse API.

    CALLED BY: backends/factory.py when AI_PROVIDER=bedrock
    """

    provider = "bedrock"

    def __init__(
        self,
        api_key: str,
        model: str,
        region: str = "ap-south-1",
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(model, client)
        self._api_key = api_key
        self._base_url = (base_url or f"https://bedrock-runtime.{region}.amazonaws.com").rstrip("/")

    async def complete(
        self,
        prompt: str,
        *,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        timeout: float = 240.0,
    ) -> str:
        inference_config: Dict[str, Any] = {"temperature": temperature}
        if max_tokens:
            inference_config["maxTokens"] = max_tokens

        body: Dict[str, Any] = {
            "messages": [{"role": "user", "content": [{"text": prompt}]}],
            "inferenceConfig": inference_config,
        }
        if system_instruction:
            body["system"] = [{"text": system_instruction}]

        url = f"{self._base_url}/model/{quote(self.model, safe='')}/converse"
        response = await self._post(
            url,
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

        message = ((data.get("output") or {}).get("message") or {}) if isinstance(data, dict) else {}
        blocks = message.get("content") or []
        text = "".join(str(block.get("text") or "") for block in blocks if isinstance(block, dict)).strip()
        if not text:
            stop_reason = data.get("stopReason") if isinstance(data, dict) else None
            detail = "provider returned an empty completion"
            if stop_reason:
                detail = f"{detail} (stopReason={stop_reason})"
            raise BackendError(None, detail)

        usage = data.get("usage") or {}
        logger.info(
            "llm_call_success",
            provider=self.provider,
            model=self.model,
            tokens=usage.get("totalTokens", 0),
            chars=len(text),
        )
        return text
