"""
PURPOSE: Phase 1 of generation. Find the indicators the conversation actually chose.

One deterministic call to the extraction-tier backend with a closed list of
allowed keys. The reply is expected to be a JSON array of lowercase keys.
When the reply carries no array at all, indicator names are detected in the
conversation text instead. Backend or parse failures degrade to ["price"];
extraction never fails a generation run.

CALLED BY: template_builder/pipeline.py
"""

import json
import re
from typing import Any, Dict, Iterable, List, Optional

from template_engine.catalog.fallback import fallback_keyword_table
from template_engine.catalog.repository import IndicatorCatalog
from template_engine.config.constants import PRICE_TYPE
from template_engine.template_builder.backends.base import BackendError, GenerationBackend
from template_engine.template_builder.composer import PromptComposer
from template_engine.utils.logger import get_logger

logger = get_logger("template_builder.extractor")

DEFAULT_INDICATORS: List[str] = [PRICE_TYPE]


def locate_json_array(text: str) -> Optional[str]:
    """Return the span from the first '[' to the last ']', or None."""
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def finalise_keys(items: Iterable[Any]) -> List[str]:
    """Lowercase and de-duplicate string items in order, then force 'price'."""
    keys: List[str] = []
    for item in items:
        if not isinstance(item, str):
            continue
        key = item.strip().lower()
        if key and key not in keys:
            keys.append(key)
    if PRICE_TYPE not in keys:
        keys.append(PRICE_TYPE)
    return keys


def _phrase_pattern(phrase: str) -> "re.Pattern[str]":
    return re.compile(r"(?<![a-z0-9_])" + re.escape(phrase) + r"(?![a-z0-9_])")


class IndicatorExtractor:
    """
    PURPOSE: Turn conversation text into a list of lowercase indicator keys.

    CALLED BY: TemplatePipeline (EXTRACTING stage)
    """

    def __init__(
        self,
        backend: GenerationBackend,
        catalog: Optional[IndicatorCatalog] = None,
        composer: Optional[PromptComposer] = None,
        temperature: float = 0.0,
        max_tokens: int = 500,
        timeout: float = 30.0,
    ) -> None:
        self._backend = backend
        self._catalog = catalog
        self._composer = composer or PromptComposer()
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout

    async def extract(self, conversation_text: str) -> List[str]:
        """
        PURPOSE: Ask the extraction backend which indicators were selected.

        Args:
            conversation_text: Conversation summary to analyze

        Returns:
            List[str]: Lowercase, de-duplicated keys, always ending with "price"
                when it was not already present.
        """
        prompt = self._composer.compose_extraction(conversation_text)
        try:
            reply = await self._backend.complete(
                prompt,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                timeout=self._timeout,
            )
        except BackendError as e:
            logger.warning("indicator_extraction_failed", error=str(e), fallback=DEFAULT_INDICATORS)
            return list(DEFAULT_INDICATORS)

        array_text = locate_json_array(reply)
        if array_text is None:
            detected = await self.detect_in_text(conversation_text)
            logger.warning(
                "indicator_extraction_no_array",
                reply_preview=reply[:120],
                detected=detected,
            )
            return finalise_keys(detected)

        try:
            parsed = json.loads(array_text)
        except json.JSONDecodeError as e:
            logger.warning("indicator_extraction_parse_failed", error=str(e), fallback=DEFAULT_INDICATORS)
            return list(DEFAULT_INDICATORS)

        if not isinstance(parsed, list):
            return list(DEFAULT_INDICATORS)

        keys = finalise_keys(parsed)
        logger.info("indicators_extracted", indicators=keys)
        return keys

    async def detect_in_text(self, conversation_text: str) -> List[str]:
        """
        PURPOSE: Keyword detection over the conversation when the model gave no array.

        Matches whole words/phrases from the built-in keyword table merged
        with the catalog's type, display name, alias and keyword mappings.

        Returns:
            List[str]: Detected keys in first-match order (without "price").
        """
        text = conversation_text.lower()
        phrases = await self._phrase_table()

        hits: List[tuple] = []
        for phrase, key in phrases.items():
            match = _phrase_pattern(phrase).search(text)
            if match:
                hits.append((match.start(), key))

        detected: List[str] = []
        for _, key in sorted(hits):
            if key != PRICE_TYPE and key not in detected:
                detected.append(key)
        return detected

    async def _phrase_table(self) -> Dict[str, str]:
        """Phrase -> key, built-in table first, catalog mappings layered on top."""
        phrases: Dict[str, str] = {}
        for key, keywords in fallback_keyword_table().items():
            for phrase in (key,) + tuple(keywords):
                phrases[phrase.lower()] = key

        if self._catalog is not None:
            try:
                phrases.update(await self._catalog.get_keyword_mappings())
            except Exception as e:
                logger.warning("indicator_keyword_mappings_unavailable", error=str(e))
        return phrases
