"""
PURPOSE: Tests for IndicatorExtractor (phase 1).

Covers:
- JSON array replies, fenced or surrounded by prose
- Lowercasing, de-duplication and the forced "price" key
- Keyword detection when the reply carries no array
- ["price"] fallback on backend and parse failures
"""

from typing import Dict, List

import pytest

from template_engine.catalog.repository import IndicatorCatalog
from template_engine.template_builder.backends.base import BackendError
from template_engine.template_builder.extractor import (
    IndicatorExtractor,
    finalise_keys,
    locate_json_array,
)
from conftest import FakeBackend


class KeywordCatalog(IndicatorCatalog):
    """Catalog stub that only answers keyword mappings."""

    def __init__(self, mappings: Dict[str, str], fail: bool = False) -> None:
        self.mappings = mappings
        self.fail = fail

    async def get_all_active(self):
        return []

    async def get_by_types(self, keys):
        return []

    async def get_by_type(self, key):
        return None

    async def upsert(self, definition):
        return definition

    async def delete(self, key):
        return False

    async def get_keyword_mappings(self) -> Dict[str, str]:
        if self.fail:
            raise RuntimeError("catalog offline")
        return dict(self.mappings)


CONVERSATION = "USER: Buy when the EMA 20 turns up and RSI 14 is under 30.\n\n"


class TestHelpers:
    """Test locate_json_array / finalise_keys."""

    def test_locate_array_in_prose(self):
        """The span runs from the first '[' to the last ']'."""
        assert locate_json_array('Answer: ["rsi", "ema"] done') == '["rsi", "ema"]'

    def test_locate_array_missing(self):
        """No brackets means no array."""
        assert locate_json_array("rsi and ema") is None
        assert locate_json_array("] [") is None

    def test_finalise_keys(self):
        """Lowercase, de-duplicate, drop non-strings, append price."""
        assert finalise_keys(["RSI", " ema ", "rsi", 5, None, ""]) == ["rsi", "ema", "price"]

    def test_finalise_keeps_existing_price(self):
        """price is not appended twice and keeps its position."""
        assert finalise_keys(["price", "macd"]) == ["price", "macd"]


class TestExtract:
    """Test IndicatorExtractor.extract()."""

    async def test_plain_array(self):
        """A bare JSON array is used as-is (normalised)."""
        backend = FakeBackend(['["RSI", "ema", "rsi"]'])
        keys = await IndicatorExtractor(backend).extract(CONVERSATION)
        assert keys == ["rsi", "ema", "price"]

    async def test_fenced_array(self):
        """Code fences around the array are tolerated."""
        backend = FakeBackend(['```json\n["macd"]\n```'])
        keys = await IndicatorExtractor(backend).extract(CONVERSATION)
        assert keys == ["macd", "price"]

    async def test_empty_array_yields_price(self):
        """An empty selection still carries price."""
        backend = FakeBackend(["[]"])
        assert await IndicatorExtractor(backend).extract(CONVERSATION) == ["price"]

    async def test_deterministic_call(self):
        """Extraction runs at temperature 0 with the closed allowed list."""
        backend = FakeBackend(['["rsi"]'])
        await IndicatorExtractor(backend, max_tokens=500, timeout=30.0).extract(CONVERSATION)

        call = backend.calls[0]
        assert call["temperature"] == 0.0
        assert call["max_tokens"] == 500
        assert call["timeout"] == 30.0
        assert CONVERSATION in call["prompt"]
        assert "- bollingerbands (" in call["prompt"]

    async def test_no_array_falls_back_to_keywords(self):
        """No array: indicators are detected in the conversation, in order."""
        backend = FakeBackend(["I think they want RSI and EMA."])
        keys = await IndicatorExtractor(backend).extract(CONVERSATION)
        assert keys == ["ema", "rsi", "price"]

    async def test_invalid_array_yields_price(self):
        """An unparsable array degrades to ["price"]."""
        backend = FakeBackend(["[rsi, ema]"])
        assert await IndicatorExtractor(backend).extract(CONVERSATION) == ["price"]

    async def test_non_string_items_dropped(self):
        """Numbers and nulls inside the array are ignored."""
        backend = FakeBackend(['{"a": [1, null]}'])
        keys = await IndicatorExtractor(backend).extract(CONVERSATION)
        assert keys == ["price"]

    @pytest.mark.parametrize(
        "error",
        [
            BackendError(None, "request timed out after 30s"),
            BackendError(503, "overloaded"),
            BackendError(401, "invalid api key"),
        ],
    )
    async def test_backend_error_yields_price(self, error):
        """Extraction never fails the run."""
        backend = FakeBackend([error])
        assert await IndicatorExtractor(backend).extract(CONVERSATION) == ["price"]


class TestDetectInText:
    """Test keyword detection."""

    async def test_builtin_phrases(self):
        """Multi-word phrases map to their key."""
        extractor = IndicatorExtractor(FakeBackend())
        text = "Use the average true range and the Bollinger bands, plus a simple moving average."
        assert await extractor.detect_in_text(text) == ["atr", "bollingerbands", "sma"]

    async def test_whole_words_only(self):
        """'ema' inside another word does not match."""
        extractor = IndicatorExtractor(FakeBackend())
        assert await extractor.detect_in_text("I need a theme for my schema") == []

    async def test_catalog_mappings_used(self):
        """Catalog keywords extend the phrase table."""
        catalog = KeywordCatalog({"heikin ashi": "heikinashi"})
        extractor = IndicatorExtractor(FakeBackend(), catalog=catalog)
        assert await extractor.detect_in_text("Heikin Ashi candles with RSI") == ["heikinashi", "rsi"]

    async def test_catalog_failure_tolerated(self):
        """A failing catalog leaves the built-in table in place."""
        extractor = IndicatorExtractor(FakeBackend(), catalog=KeywordCatalog({}, fail=True))
        found: List[str] = await extractor.detect_in_text("RSI only")
        assert found == ["rsi"]
