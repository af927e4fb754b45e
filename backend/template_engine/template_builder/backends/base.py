"""
PURPOSE: Provider-agnostic contract for text-generation backends.

Every provider implements one capability: turn a prompt (plus an optional
system instruction, temperature and token budget) into raw text. Failures
surface as BackendError; no provider retries on its own.

CALLED BY:
    - template_builder/extractor.py (extraction tier)
    - template_builder/pipeline.py (generation tier)
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import httpx


class BackendError(Exception):
    """
    PURPOSE: Explicit generation backend failure.

    Attributes:
        status: HTTP status of a non-success response, or None for timeouts,
            transport failures and empty completions.
        message: Normalised, non-blank detail (at most 240 characters).
    """

    def __init__(self, status: Optional[int], message: str) -> None:
        self.status = status
        self.message = message
        prefix = f"HTTP {status}" if status is not None else "BackendError"
        super().__init__(f"[{prefix}] {message}")


def normalize_error_message(raw_message: Optional[str], fallback: str) -> str:
    """Normalize message text so backend errors are never blank."""
    msg = " ".join(str(raw_message or "").strip().split())
    return msg[:240] if msg else fallback


def extract_http_error_detail(response: httpx.Response) -> str:
    """Extract a meaningful detail from non-2xx provider responses."""
    fallback = f"HTTP {response.status_code}"
    try:
        payload = response.json()
    except ValueError:
        return normalize_error_message(response.text, fallback=fallback)

    if isinstance(payload, dict):
        if isinstance(payload.get("error"), dict):
            return normalize_error_message(payload["error"].get("message"), fallback=fallback)
        for key in ("message", "detail", "error"):
            if payload.get(key):
                return normalize_error_message(str(payload.get(key)), fallback=fallback)
    if isinstance(payload, list) and payload:
        first = payload[0]
        if isinstance(first, dict) and isinstance(first.get("error"), dict):
            return normalize_error_message(first["error"].get("message"), fallback=fallback)
        return normalize_error_message(str(first), fallback=fallback)
    return normalize_error_message(response.text, fallback=fallback)


class GenerationBackend(ABC):
    """
    PURPOSE: Interchangeable model provider behind the pipeline.

    Implementations share one httpx.AsyncClient for their lifetime; call
    close() on shutdown.
    """

    provider: str = "unknown"

    def __init__(self, model: str, client: Optional[httpx.AsyncClient] = None) -> None:
        self.model = model
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        *,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        timeout: float = 240.0,
    ) -> str:
        """
        Generate a completion for prompt.

        Args:
            prompt: User prompt text
            system_instruction: Optional system role instruction
            temperature: Sampling temperature
            max_tokens: Optional output token budget
            timeout: Seconds before the call is abandoned

        Returns:
            str: Raw, non-empty completion text.

        Raises:
            BackendError: On non-success status, timeout, transport failure
                or empty output.
        """

    async def close(self) -> None:
        """Release the HTTP client if this backend created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _post(self, url: str, *, timeout: float, **kwargs) -> httpx.Response:
        """POST with the shared client, mapping transport failures to BackendError."""
        try:
            response = await asyncio.wait_for(
                self._get_client().post(url, timeout=timeout, **kwargs),
                timeout=timeout,
            )
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            raise BackendError(e.response.status_code, extract_http_error_detail(e.response)) from e
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise BackendError(None, f"request timed out after {timeout:g}s") from e
        except httpx.HTTPError as e:
            err_type = type(e).__name__
            raise BackendError(None, normalize_error_message(f"{err_type}: {e}", fallback=err_type)) from e
