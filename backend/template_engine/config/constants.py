"""
PURPOSE: Enumerations and fixed vocabularies shared across the template engine.

Holds template lifecycle states, condition kinds, the names of the four
stepwise lists and the closed set of indicator keys the extractor may return.
"""

from enum import Enum
from typing import Dict, Tuple


class TemplateStatus(str, Enum):
    """Lifecycle status of a persisted template."""

    DRAFT = "draft"
    GENERATING = "generating"
    ACTIVE = "active"
    FAILED = "failed"


class TemplateType(str, Enum):
    """Which rules variant a template carries."""

    EXECUTION = "execution"
    SIGNAL = "signal"


class ConditionKind(str, Enum):
    """Condition grammar kinds understood by the execution engine."""

    ABOVE = "above"
    BELOW = "below"
    CROSSOVER = "crossover"
    CROSSUNDER = "crossunder"


class SignalDirection(str, Enum):
    """Directional bias of a signal template."""

    BULLISH = "bullish"
    BEARISH = "bearish"


# Kinds comparing one indicator against a threshold
THRESHOLD_KINDS = frozenset({ConditionKind.ABOVE, ConditionKind.BELOW})

# Kinds comparing two indicators against each other
CROSS_KINDS = frozenset({ConditionKind.CROSSOVER, ConditionKind.CROSSUNDER})

# (python attribute, wire key) for the four stepwise lists
STEP_LISTS: Tuple[Tuple[str, str], ...] = (
    ("long_entry_steps", "longEntrySteps"),
    ("long_exit_steps", "longExitSteps"),
    ("short_entry_steps", "shortEntrySteps"),
    ("short_exit_steps", "shortExitSteps"),
)

PRICE_TYPE = "price"

# Owner of templates shared with every user
GLOBAL_OWNER = "GLOBAL"

DEFAULT_CATEGORY = "Custom"

# Closed list offered to the extraction model: key -> human description
SUPPORTED_INDICATORS: Dict[str, str] = {
    "rsi": "Relative Strength Index - also known as RSI",
    "ema": "Exponential Moving Average - also known as EMA",
    "sma": "Simple Moving Average - also known as SMA",
    "macd": "Moving Average Convergence Divergence - also known as MACD",
    "bollingerbands": "Bollinger Bands - also known as BBANDS, BB",
    "atr": "Average True Range - also known as ATR",
    "adx": "Average Directional Index - also known as ADX",
    "stochastic": "Stochastic Oscillator - also known as STOCH",
    "supertrend": "Supertrend",
    "cci": "Commodity Channel Index - also known as CCI",
    "williamsr": "Williams %R",
    "mfi": "Money Flow Index - also known as MFI",
    "obv": "On-Balance Volume - also known as OBV",
    "vwap": "Volume Weighted Average Price - also known as VWAP",
    "ichimoku": "Ichimoku Cloud",
    "parabolicsar": "Parabolic SAR - also known as PSAR",
    "roc": "Rate of Change - also known as ROC",
    "momentum": "Momentum",
    "keltner": "Keltner Channel",
    "donchian": "Donchian Channel",
    "pivotpoints": "Pivot Points",
    "zscore": "Z-Score",
    "prev_high": "Previous High - also known as PREV_HIGH, Previous Day High, Previous Candle High",
    "prev_low": "Previous Low - also known as PREV_LOW, Previous Day Low, Previous Candle Low",
    "prev_close": "Previous Close - also known as PREV_CLOSE, Previous Day Close, Previous Candle Close",
}
