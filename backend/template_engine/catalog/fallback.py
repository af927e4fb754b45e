"""
PURPOSE: Built-in indicator definition table.

Used by the resolver for any extracted key the catalog has no entry for, by
the extractor's keyword fallback, and by the seed routine that fills an empty
catalog. Covers the common indicator set so generation never blocks on a cold
or empty catalog.

CALLED BY:
    - template_builder/resolver.py
    - template_builder/extractor.py (keyword table)
    - catalog/seed.py
"""

import json
from typing import Any, Dict, List, Optional, Tuple

from template_engine.schemas.indicator import IndicatorDefinition


def _period(low: int, high: int, default: int, label: str = "Period") -> Dict[str, Any]:
    return {"type": "number", "label": label, "min": low, "max": high, "defaultValue": default, "required": True}


def _number(low: float, high: float, default: float, label: str) -> Dict[str, Any]:
    return {"type": "number", "label": label, "min": low, "max": high, "defaultValue": default, "required": True}


# type, display name, category, example id, usage lines, parameters, keywords
_TABLE: List[Tuple[str, str, str, str, Tuple[str, ...], Dict[str, Any], Tuple[str, ...]]] = [
    (
        "price", "Price", "price", "close",
        (
            'id MUST be "close", type="PRICE", label="Close Price"',
            "Use when comparing the CURRENT price with an indicator or a level",
            "Never compare PRICE with itself; use PREV_CLOSE / PREV_HIGH / PREV_LOW for the previous candle",
        ),
        {},
        ("price", "close"),
    ),
    (
        "prev_high", "Previous High", "price", "prev_high",
        (
            'id="prev_high", type="PREV_HIGH", label="Previous High"',
            'Use for "previous high", "yesterday\'s high", "last candle\'s high"',
        ),
        {},
        ("previous high", "prev_high", "yesterday's high"),
    ),
    (
        "prev_low", "Previous Low", "price", "prev_low",
        (
            'id="prev_low", type="PREV_LOW", label="Previous Low"',
            'Use for "previous low", "yesterday\'s low", "last candle\'s low"',
        ),
        {},
        ("previous low", "prev_low", "yesterday's low"),
    ),
    (
        "prev_close", "Previous Close", "price", "prev_close",
        (
            'id="prev_close", type="PREV_CLOSE", label="Previous Close"',
            'Current close above previous close = crossover with indicator1="close", indicator2="prev_close"',
        ),
        {},
        ("previous close", "prev_close", "yesterday's close"),
    ),
    (
        "rsi", "RSI", "momentum", "rsi_14",
        (
            'id format "rsi_{period}" (e.g. "rsi_14"), type="RSI"',
            "Range 0-100 (oversold < 30, overbought > 70)",
        ),
        {"period": _period(2, 50, 14)},
        ("rsi", "relative strength"),
    ),
    (
        "ema", "EMA", "trend", "ema_20",
        (
            'id format "ema_{period}" (e.g. "ema_20", "ema_50", "ema_200"), type="EMA"',
            "Two EMAs with different periods are two indicators with two ids",
        ),
        {"period": _period(1, 200, 20)},
        ("ema", "exponential moving average"),
    ),
    (
        "sma", "SMA", "trend", "sma_50",
        (
            'id format "sma_{period}" (e.g. "sma_20", "sma_50", "sma_200"), type="SMA"',
        ),
        {"period": _period(1, 200, 50)},
        ("sma", "simple moving average"),
    ),
    (
        "macd", "MACD", "momentum", "macd_12_26_9",
        (
            'MACD line: id format "macd_{fast}_{slow}_{signal}" (e.g. "macd_12_26_9"), type="MACD"',
            'Signal line: a SEPARATE indicator, id "macd_signal_{fast}_{slow}_{signal}" (e.g. "macd_signal_12_26_9"), type="MACD"',
            "Both indicators MUST carry identical parameters",
        ),
        {
            "fastPeriod": _period(2, 50, 12, "Fast Period"),
            "slowPeriod": _period(2, 100, 26, "Slow Period"),
            "signalPeriod": _period(2, 50, 9, "Signal Period"),
        },
        ("macd", "moving average convergence"),
    ),
    (
        "bollingerbands", "Bollinger Bands", "volatility", "bb_20",
        (
            'id format "bb_{period}" (e.g. "bb_20"), type="BOLLINGERBANDS"',
            'For individual bands use types "BB_UPPER", "BB_MIDDLE", "BB_LOWER" with their own ids (e.g. "bb_upper_20")',
        ),
        {
            "period": _period(5, 100, 20),
            "standardDeviations": _number(1, 5, 2, "Standard Deviations"),
        },
        ("bollinger", "bbands"),
    ),
    (
        "atr", "ATR", "volatility", "atr_14",
        ('id format "atr_{period}" (e.g. "atr_14"), type="ATR"',),
        {"period": _period(5, 50, 14)},
        ("atr", "average true range"),
    ),
    (
        "adx", "ADX", "trend", "adx_14",
        (
            'id format "adx_{period}" (e.g. "adx_14"), type="ADX"',
            "Range 0-100 (strong trend > 25, weak trend < 20)",
        ),
        {"period": _period(5, 50, 14)},
        ("adx", "average directional", "directional index"),
    ),
    (
        "stochastic", "Stochastic", "momentum", "stoch_14_3",
        (
            'id format "stoch_{k}_{d}" (e.g. "stoch_14_3"), type="STOCHASTIC"',
            "Range 0-100 (oversold < 20, overbought > 80)",
        ),
        {
            "kPeriod": _period(5, 50, 14, "K Period"),
            "dPeriod": _period(1, 10, 3, "D Period"),
        },
        ("stochastic", "stoch", "%k", "%d"),
    ),
    (
        "supertrend", "Supertrend", "trend", "supertrend_10_3",
        ('id format "supertrend_{period}_{multiplier}" (e.g. "supertrend_10_3"), type="SUPERTREND"',),
        {
            "period": _period(5, 50, 10),
            "multiplier": _number(1, 10, 3, "Multiplier"),
        },
        ("supertrend", "super trend"),
    ),
    (
        "cci", "CCI", "momentum", "cci_20",
        (
            'id format "cci_{period}" (e.g. "cci_20"), type="CCI"',
            "Oversold < -100, overbought > +100",
        ),
        {"period": _period(2, 50, 20)},
        ("cci", "commodity channel"),
    ),
    (
        "williamsr", "Williams %R", "momentum", "williamsr_14",
        (
            'id format "williamsr_{period}" (e.g. "williamsr_14"), type="WILLIAMSR"',
            "Range -100 to 0 (oversold < -80, overbought > -20)",
        ),
        {"period": _period(2, 50, 14)},
        ("williams", "williams %r", "williams r"),
    ),
    (
        "mfi", "MFI", "volume", "mfi_14",
        (
            'id format "mfi_{period}" (e.g. "mfi_14"), type="MFI"',
            "Range 0-100 (oversold < 20, overbought > 80)",
        ),
        {"period": _period(2, 50, 14)},
        ("mfi", "money flow index"),
    ),
    (
        "obv", "OBV", "volume", "obv",
        ('id="obv", type="OBV"',),
        {},
        ("obv", "on-balance volume", "on balance volume"),
    ),
    (
        "vwap", "VWAP", "volume", "vwap",
        ('id="vwap", type="VWAP", resets each session',),
        {},
        ("vwap", "volume weighted average"),
    ),
    (
        "ichimoku", "Ichimoku Cloud", "trend", "ichimoku_9_26_52",
        (
            'id format "ichimoku_{tenkan}_{kijun}_{senkou}", type="ICHIMOKU"',
            "Components use separate indicators with types TENKAN_SEN, KIJUN_SEN, SENKOU_SPAN_A, SENKOU_SPAN_B, CHIKOU_SPAN, each with its own id",
        ),
        {
            "tenkanPeriod": _period(5, 30, 9, "Tenkan Period"),
            "kijunPeriod": _period(10, 60, 26, "Kijun Period"),
            "senkouPeriod": _period(20, 120, 52, "Senkou Period"),
        },
        ("ichimoku", "kumo", "tenkan", "kijun"),
    ),
    (
        "parabolicsar", "Parabolic SAR", "trend", "psar",
        ('id="psar", type="PSAR"',),
        {
            "accelerationStep": _number(0.01, 0.1, 0.02, "Acceleration Step"),
            "maxAcceleration": _number(0.1, 1.0, 0.2, "Max Acceleration"),
        },
        ("parabolic sar", "psar"),
    ),
    (
        "roc", "Rate of Change", "momentum", "roc_14",
        ('id format "roc_{period}" (e.g. "roc_14"), type="ROC"',),
        {"period": _period(1, 100, 14)},
        ("rate of change",),
    ),
    (
        "momentum", "Momentum", "momentum", "momentum_10",
        ('id format "momentum_{period}" (e.g. "momentum_10"), type="MOMENTUM"',),
        {"period": _period(1, 100, 10)},
        ("momentum indicator",),
    ),
    (
        "keltner", "Keltner Channel", "volatility", "keltner_20",
        (
            'id format "keltner_{period}" (e.g. "keltner_20"), type="KELTNER"',
            'For individual bands use types "KELTNER_UPPER", "KELTNER_MIDDLE", "KELTNER_LOWER" with their own ids',
        ),
        {
            "period": _period(5, 100, 20),
            "multiplier": _number(0.5, 5, 2, "Multiplier"),
        },
        ("keltner",),
    ),
    (
        "donchian", "Donchian Channel", "volatility", "donchian_20",
        (
            'id format "donchian_{period}" (e.g. "donchian_20"), type="DONCHIAN"',
            'For individual bands use types "DONCHIAN_UPPER", "DONCHIAN_MIDDLE", "DONCHIAN_LOWER" with their own ids',
        ),
        {"period": _period(5, 100, 20)},
        ("donchian",),
    ),
    (
        "pivotpoints", "Pivot Points", "levels", "pivot",
        (
            'id="pivot", type="PIVOTPOINTS"',
            "Levels use separate indicators with types PIVOT, R1, R2, R3, S1, S2, S3, each with its own id",
        ),
        {
            "pivotType": {
                "type": "string",
                "label": "Pivot Type",
                "options": ["standard", "fibonacci", "woodie", "camarilla"],
                "defaultValue": "standard",
                "required": True,
            },
        },
        ("pivot point", "pivot"),
    ),
    (
        "zscore", "Z-Score", "statistics", "zscore_20",
        ('id format "zscore_{period}" (e.g. "zscore_20"), type="ZSCORE"',),
        {"period": _period(5, 200, 20)},
        ("zscore", "z-score", "z score"),
    ),
]


def render_snippet(display_name: str, usage: Tuple[str, ...], parameters: Dict[str, Any]) -> str:
    """Render the prompt block for one definition."""
    lines = [f"- {display_name.upper()}:"]
    lines.extend(f"    {line}" for line in usage)
    if parameters:
        lines.append(f"    parameters={json.dumps(parameters)}")
    else:
        lines.append("    parameters={} (no parameters)")
    return "\n".join(lines)


def _build() -> Dict[str, IndicatorDefinition]:
    table: Dict[str, IndicatorDefinition] = {}
    for sort_order, (key, display, category, example_id, usage, params, keywords) in enumerate(_TABLE):
        table[key] = IndicatorDefinition(
            type=key,
            display_name=display,
            category=category,
            example_id=example_id,
            parameter_schema=params,
            prompt_snippet=render_snippet(display, usage, params),
            aliases=(display.lower(),),
            keywords=keywords,
            sort_order=sort_order,
        )
    return table


FALLBACK_DEFINITIONS: Dict[str, IndicatorDefinition] = _build()


def get_fallback(indicator_type: str) -> Optional[IndicatorDefinition]:
    """Return the built-in definition for a key, or None."""
    return FALLBACK_DEFINITIONS.get(indicator_type.strip().lower())


def fallback_keyword_table() -> Dict[str, Tuple[str, ...]]:
    """Key -> phrases used for text detection when extraction yields no array."""
    return {
        key: definition.keywords
        for key, definition in FALLBACK_DEFINITIONS.items()
        if key != "price"
    }
