"""
PURPOSE: Pytest fixtures for template engine tests.

Provides shared test data and fakes including:
- Async SQLite session factory with all tables created
- Test configuration settings
- Scripted fake generation backends
- Sample conversations and generated rules payloads
"""

import asyncio
import copy
import json
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Union

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from template_engine.catalog.repository import IndicatorCatalog
from template_engine.schemas.indicator import IndicatorDefinition
from template_engine.template_builder.backends.base import BackendError, GenerationBackend


# ════════════════════════════════════════════════════════════════
# Fakes
# ════════════════════════════════════════════════════════════════


class FakeBackend(GenerationBackend):
    """
    Scripted backend: each complete() call pops the next reply.

    A reply may be a string (returned), an Exception (raised) or a float
    (sleep that many seconds inside asyncio.wait_for(timeout) first, so a
    short timeout turns into BackendError the way a real provider would).
    """

    provider = "fake"

    def __init__(self, replies: Optional[List[Union[str, Exception, float]]] = None) -> None:
        super().__init__(model="fake-model")
        self.replies = list(replies or [])
        self.calls: List[dict] = []

    async def complete(
        self,
        prompt: str,
        *,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        timeout: float = 240.0,
    ) -> str:
        self.calls.append(
            {
                "prompt": prompt,
                "system_instruction": system_instruction,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "timeout": timeout,
            }
        )
        if not self.replies:
            raise BackendError(None, "provider returned an empty completion")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, float):
            try:
                await asyncio.wait_for(asyncio.sleep(reply), timeout=timeout)
            except asyncio.TimeoutError as e:
                raise BackendError(None, f"request timed out after {timeout:g}s") from e
            return "{}"
        return reply


class MemoryCatalog(IndicatorCatalog):
    """Dict-backed catalog; set fail=True to make every read raise."""

    def __init__(self, definitions=(), fail: bool = False) -> None:
        self.definitions: Dict[str, IndicatorDefinition] = {d.type: d for d in definitions}
        self.fail = fail
        self.lookups: List[List[str]] = []

    def _check(self) -> None:
        if self.fail:
            raise RuntimeError("catalog unavailable")

    async def get_all_active(self) -> List[IndicatorDefinition]:
        self._check()
        active = [d for d in self.definitions.values() if d.active]
        return sorted(active, key=lambda d: (d.sort_order, d.type))

    async def get_by_types(self, keys) -> List[IndicatorDefinition]:
        self._check()
        wanted = list(keys)
        self.lookups.append(wanted)
        return [d for d in await self.get_all_active() if d.type in wanted]

    async def get_by_type(self, key: str) -> Optional[IndicatorDefinition]:
        self._check()
        return self.definitions.get(key)

    async def upsert(self, definition: IndicatorDefinition) -> IndicatorDefinition:
        self.definitions[definition.type] = definition
        return definition

    async def delete(self, key: str) -> bool:
        return self.definitions.pop(key, None) is not None


# ════════════════════════════════════════════════════════════════
# Database
# ════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def session_factory():
    """
    PURPOSE: In-memory SQLite session factory for testing.

    StaticPool keeps one connection so every session sees the same database.
    Tables are created fresh for each test.

    Returns:
        async_sessionmaker: Factory bound to the in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    from template_engine.db.base import Base
    from template_engine.models import IndicatorDefinitionRecord, Template  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory

    await engine.dispose()


@pytest_asyncio.fixture
async def async_session(session_factory):
    """Single session on the in-memory database."""
    async with session_factory() as session:
        yield session


# ════════════════════════════════════════════════════════════════
# Settings
# ════════════════════════════════════════════════════════════════


@pytest.fixture
def test_settings():
    """
    PURPOSE: Settings override with test values.

    Short timeouts so timeout scenarios finish quickly.
    """
    from template_engine.config.settings import Settings

    return Settings(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        REDIS_URL="redis://localhost:6379/1",
        AI_PROVIDER="openai",
        OPENAI_API_KEY="test-key",
        GENERATION_TIMEOUT_SECONDS=0.2,
        EXTRACTION_TIMEOUT_SECONDS=0.2,
        MAX_GENERATION_ATTEMPTS=3,
        INLINE_GENERATION=True,
        DEBUG=True,
        LOG_LEVEL="DEBUG",
        JWT_SECRET="test-secret-key",
    )


# ════════════════════════════════════════════════════════════════
# Sample data
# ════════════════════════════════════════════════════════════════


RSI_CONVERSATION = (
    "=== CONVERSATION HISTORY ===\n\n"
    "USER: I want a long-only strategy that buys when RSI 14 drops below 30.\n\n"
    "ASSISTANT: Great, we will use RSI only. Exit when RSI goes above 70.\n\n"
)


def _rsi_param(default: int) -> dict:
    return {
        "type": "number",
        "label": "Level",
        "min": 0,
        "max": 100,
        "defaultValue": default,
        "step": 1,
        "required": True,
    }


VALID_STEPWISE_PAYLOAD = {
    "name": "RSI Reversal",
    "description": "Buy oversold RSI, exit overbought",
    "version": "1.0",
    "category": "Custom",
    "indicators": [
        {
            "id": "rsi_14",
            "type": "RSI",
            "label": "RSI (14)",
            "parameters": {
                "period": {"type": "number", "label": "Period", "min": 2, "max": 50, "defaultValue": 14, "required": True}
            },
        },
        {"id": "ema_20", "type": "EMA", "label": "EMA (20)", "parameters": {}},
        {"id": "close", "type": "PRICE", "label": "Close Price", "parameters": {}},
    ],
    "longEntrySteps": [
        {
            "stepOrder": 1,
            "stepName": "T1: RSI Oversold",
            "description": "RSI dips below 30",
            "conditions": [
                {
                    "id": "rsi_oversold",
                    "type": "below",
                    "description": "RSI below 30",
                    "indicator": "rsi_14",
                    "value": 30,
                    "indicator1": None,
                    "indicator2": None,
                    "parameters": {"value": _rsi_param(30)},
                }
            ],
            "isMandatory": True,
        },
        {
            "stepOrder": 2,
            "stepName": "T2: Price Confirms",
            "description": "Close crosses above EMA 20",
            "conditions": [
                {
                    "id": "close_cross_ema",
                    "type": "crossover",
                    "description": "Close crosses above EMA 20",
                    "indicator": None,
                    "value": None,
                    "indicator1": "close",
                    "indicator2": "ema_20",
                }
            ],
            "isMandatory": False,
        },
    ],
    "longExitSteps": [
        {
            "stepOrder": 1,
            "stepName": "T1: RSI Overbought",
            "description": "RSI rises above 70",
            "conditions": [
                {
                    "id": "rsi_overbought",
                    "type": "above",
                    "description": "RSI above 70",
                    "indicator": "rsi_14",
                    "value": 70,
                    "indicator1": None,
                    "indicator2": None,
                    "parameters": {"value": _rsi_param(70)},
                }
            ],
            "isMandatory": True,
        }
    ],
    "shortEntrySteps": [],
    "shortExitSteps": [],
}


VALID_SIGNAL_PAYLOAD = {
    "name": "HTF Bull Bias",
    "description": "Close above EMA 50 on 4h",
    "version": "1.0",
    "category": "Custom",
    "direction": "bullish",
    "timeframe": "4h",
    "indicators": [
        {"id": "ema_50", "type": "EMA", "label": "EMA (50)", "parameters": {}},
        {"id": "close", "type": "PRICE", "label": "Close Price", "parameters": {}},
    ],
    "signalConditions": [
        {
            "id": "close_above_ema",
            "type": "crossover",
            "description": "Close above EMA 50",
            "indicator": None,
            "value": None,
            "indicator1": "close",
            "indicator2": "ema_50",
        }
    ],
}


@pytest.fixture
def stepwise_payload() -> dict:
    """Deep copy of a valid stepwise rules payload (safe to mutate)."""
    return copy.deepcopy(VALID_STEPWISE_PAYLOAD)


@pytest.fixture
def signal_payload() -> dict:
    """Deep copy of a valid signal rules payload (safe to mutate)."""
    return copy.deepcopy(VALID_SIGNAL_PAYLOAD)


@pytest.fixture
def stepwise_json(stepwise_payload) -> str:
    return json.dumps(stepwise_payload)


@pytest.fixture
def conversation_messages():
    """Two-turn conversation as request message dicts."""
    start = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
    return [
        {
            "role": "user",
            "content": "Buy when RSI 14 drops below 30, exit above 70.",
            "timestamp": start.isoformat(),
        },
        {
            "role": "assistant",
            "content": "Understood: RSI only, long side.",
            "timestamp": (start + timedelta(minutes=1)).isoformat(),
        },
    ]
