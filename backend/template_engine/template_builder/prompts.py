"""
PURPOSE: Prompt text for indicator extraction and template generation.

Pure data. Templates ending in _TEMPLATE carry str.format placeholders and no
literal braces; every other block is used verbatim, so JSON examples keep
single braces. PromptComposer assembles these blocks; nothing here makes
decisions.

CALLED BY: template_builder/composer.py
"""

# ============================================================
# Phase 1: indicator extraction
# ============================================================

EXTRACTION_PROMPT_TEMPLATE = """\
You are analyzing a conversation about creating a trading strategy. The conversation may contain suggested indicators and final selected indicators.

CONVERSATION:
{conversation}

QUESTION: What are the FINAL indicators that were selected/chosen for this strategy?

Ignore any lists of suggested indicators. Only return the indicators that were actually selected/chosen by the user for their final strategy.

Return your answer as a JSON array using ONLY these standard type names:
{allowed_indicators}

CRITICAL RULES:
1. Return ONLY a JSON array of strings
2. Use lowercase indicator type names
3. Extract ONLY indicators that are EXPLICITLY mentioned by name in the conversation
4. DO NOT infer or add related indicators (e.g., if Bollinger Bands is mentioned, do NOT add SMA or EMA)
5. DO NOT add indicators that might be used internally by other indicators
6. If the same indicator is mentioned with different periods, return just one entry
7. Be very strict - only extract what is directly mentioned

Examples:
- If conversation says "RSI and Bollinger Bands", return: ["rsi", "bollingerbands"]
- If conversation says "MACD crossover", return: ["macd"]
- If conversation says "EMA 20 and EMA 50", return: ["ema"]

Return ONLY the JSON array with NO explanation, NO markdown, NO additional text.
Your entire response should be just the array: ["indicator1", "indicator2"]"""

EXTRACTION_ALLOWED_LINE_TEMPLATE = "- {key} ({description})"


# ============================================================
# Shared blocks
# ============================================================

UNSUPPORTED_INDICATOR_RULE = """\
UNSUPPORTED INDICATORS:
If the user insists on an indicator that is NOT in the AVAILABLE INDICATORS list and no supported indicator is a reasonable substitute, do NOT generate a template. Return ONLY this JSON object instead:
{
  "error": true,
  "message": "The indicator '<name>' is not currently supported. Would you like to use one of the suggested alternatives instead?",
  "unsupportedIndicators": ["<name>"],
  "suggestedAlternatives": ["<closest supported indicator>"]
}
If the strategy can be built with supported indicators, use the closest match instead of returning an error."""

AVAILABLE_INDICATORS_HEADER = """\
AVAILABLE INDICATORS (use ONLY these, never invent new indicator types):"""

ID_NAMING_RULES = """\
INDICATOR ID RULES:
1. Every indicator instance has its own unique, lowercase id that includes its primary parameter values (e.g. "rsi_14", "ema_20", "macd_12_26_9")
2. Two instances of the same type use two different ids (e.g. "ema_20" and "ema_50")
3. The current price indicator id MUST be "close" with type "PRICE" (never "price_close" or other variants)
4. Previous candle values use ids "prev_close", "prev_high", "prev_low" with types "PREV_CLOSE", "PREV_HIGH", "PREV_LOW"
5. Conditions reference indicators ONLY by the exact id from the indicators array, never by type (condition says "rsi_14", not "RSI")
6. Every id referenced by a condition MUST exist in the indicators array
7. Indicator parameters are DEFINITIONS with type/label/min/max/defaultValue, NOT raw values
8. Condition ids are unique, lowercase and descriptive (e.g. "rsi_oversold", "ema_cross_up")"""

CONDITION_GRAMMAR = """\
CONDITION TYPES:
1. "above" or "below": compare ONE indicator with a FIXED threshold
   - Set: indicator, value
   - MUST be null: indicator1, indicator2
   - Add a "parameters" object with a "value" parameter definition (the key must be "value" to match the condition's value field)
   - Example: RSI above 70 = type "above", indicator "rsi_14", value 70, indicator1 null, indicator2 null

2. "crossover" or "crossunder": compare TWO DIFFERENT indicators
   - Set: indicator1 (the line that crosses), indicator2 (the line being crossed)
   - MUST be null: indicator, value
   - indicator1 and indicator2 MUST be two different ids; an indicator can never cross itself
   - Example: EMA 20 crosses above EMA 50 = type "crossover", indicator1 "ema_20", indicator2 "ema_50", indicator null, value null

MULTI-PART INDICATORS (MACD):
- A MACD crossover needs TWO separate indicators with IDENTICAL parameters:
  1. MACD line:   {"id": "macd_12_26_9", "type": "MACD", "parameters": {"fastPeriod": {...}, "slowPeriod": {...}, "signalPeriod": {...}}}
  2. Signal line: {"id": "macd_signal_12_26_9", "type": "MACD", "parameters": {"fastPeriod": {...}, "slowPeriod": {...}, "signalPeriod": {...}}}
- Bullish: {"type": "crossover", "indicator1": "macd_12_26_9", "indicator2": "macd_signal_12_26_9", "indicator": null, "value": null}
- Bearish: {"type": "crossunder", "indicator1": "macd_12_26_9", "indicator2": "macd_signal_12_26_9", "indicator": null, "value": null}"""

WORKED_EXAMPLES = """\
WRONG EXAMPLES TO AVOID:
// WRONG - above condition with null indicator
{"id": "rsi_overbought", "type": "above", "indicator": null, "value": 70, "indicator1": "rsi_14", "indicator2": null}

// WRONG - crossover with indicator instead of indicator1/indicator2
{"id": "price_cross_ema", "type": "crossover", "indicator": "close", "value": null, "indicator1": null, "indicator2": "ema_20"}

// WRONG - MACD self-comparison (indicator1 and indicator2 are the same id)
{"id": "macd_cross", "type": "crossover", "indicator": null, "value": null, "indicator1": "macd_12_26_9", "indicator2": "macd_12_26_9"}

// WRONG - comparing PRICE with itself for "close above previous close"
{"id": "higher_close", "type": "crossover", "indicator": null, "value": null, "indicator1": "close", "indicator2": "close"}

CORRECT EXAMPLES:
// CORRECT - RSI above 70
{"id": "rsi_overbought", "type": "above", "description": "RSI above 70", "indicator": "rsi_14", "value": 70, "indicator1": null, "indicator2": null,
 "parameters": {"value": {"type": "number", "label": "Overbought Level", "min": 50, "max": 100, "defaultValue": 70, "step": 1, "required": true}}}

// CORRECT - price crosses above EMA 20
{"id": "price_cross_ema", "type": "crossover", "description": "Close crosses above EMA 20", "indicator": null, "value": null, "indicator1": "close", "indicator2": "ema_20"}

// CORRECT - MACD crosses above its signal line (two different ids, identical parameters)
{"id": "macd_cross", "type": "crossover", "description": "MACD crosses above signal line", "indicator": null, "value": null, "indicator1": "macd_12_26_9", "indicator2": "macd_signal_12_26_9"}

// CORRECT - close above previous close (PRICE vs PREV_CLOSE)
{"id": "higher_close", "type": "crossover", "description": "Close above previous close", "indicator": null, "value": null, "indicator1": "close", "indicator2": "prev_close"}"""


# ============================================================
# Phase 3: stepwise template generation
# ============================================================

STEPWISE_SYSTEM_INSTRUCTION = """\
You are an expert quantitative trading strategy analyst specializing in SEQUENTIAL, STEPWISE trading strategies.

YOUR ROLE: Extract trading strategy information from conversations and generate STEPWISE JSON templates with T1 -> T2 -> T3 sequential logic.

CRITICAL REQUIREMENTS:
1. Return ONLY pure JSON - absolutely NO markdown, NO code blocks, NO explanations
2. Generate SEQUENTIAL STEPS (T1, T2, T3) where each step must complete before the next is checked
3. Every field must be filled with meaningful, realistic values
4. Use null ONLY for the indicator/value fields that the condition type requires to be null
5. Ensure all JSON syntax is perfect (proper quotes, commas, brackets)
6. NEVER include stop_loss or take_profit conditions - these are configured separately
7. When referencing indicators in conditions, use the EXACT indicator id from the indicators array
8. Use STEPWISE format with longEntrySteps, longExitSteps, shortEntrySteps, shortExitSteps"""

STEPWISE_HEADER_TEMPLATE = """\
CONVERSATION TO ANALYZE:
{conversation}

STEPWISE TEMPLATE TO CREATE:
Name: "{name}"
Description: "{description}"
Category: "{category}"

Generate a STEPWISE trading strategy with SEQUENTIAL steps (T1 -> T2 -> T3). Each step must complete before the next."""

STEPWISE_JSON_SCHEMA = """\
JSON SCHEMA (STEPWISE FORMAT):
{
  "name": "<template name>",
  "description": "<template description>",
  "version": "1.0",
  "category": "<template category>",
  "indicators": [
    {
      "id": "rsi_14",
      "type": "RSI",
      "label": "RSI (14)",
      "parameters": {
        "period": {"type": "number", "label": "Period", "min": 2, "max": 50, "defaultValue": 14, "required": true, "description": "Lookback period"}
      }
    }
  ],
  "longEntrySteps": [
    {
      "stepOrder": 1,
      "stepName": "T1: Entry Condition",
      "description": "What triggers this step",
      "conditions": [
        {
          "id": "rsi_oversold",
          "type": "below",
          "description": "RSI below 30",
          "indicator": "rsi_14",
          "value": 30,
          "indicator1": null,
          "indicator2": null,
          "parameters": {
            "value": {"type": "number", "label": "Oversold Level", "min": 0, "max": 50, "defaultValue": 30, "step": 1, "required": true, "description": "Threshold"}
          }
        }
      ],
      "isMandatory": true
    },
    {
      "stepOrder": 2,
      "stepName": "T2: Confirmation",
      "description": "Optional confirmation step",
      "conditions": [],
      "isMandatory": false
    }
  ],
  "longExitSteps": [
    {"stepOrder": 1, "stepName": "T1: Exit Signal", "description": "Exit trigger", "conditions": [], "isMandatory": true}
  ],
  "shortEntrySteps": [],
  "shortExitSteps": []
}"""

STEPWISE_RULES = """\
IMPORTANT RULES:
1. Use camelCase for every property (name, indicators, longEntrySteps, stepOrder, stepName, conditions, isMandatory, ...)
2. Each step array has 1-3 steps (T1, T2, T3); stepOrder starts at 1 and increases by 1 with no gaps
3. stepName uses the format "T1: Description"
4. T1 is always isMandatory: true
5. T2 and T3 are usually isMandatory: false (optional confirmations)
6. Steps execute in order - T2 is only checked after T1 is satisfied
7. Conditions inside one step are combined with AND
8. If the conversation mentions ONLY profit targets and stop losses for exits, use an empty conditions array for the exit steps
9. ALL four step arrays MUST be present: longEntrySteps, longExitSteps, shortEntrySteps, shortExitSteps
10. If the strategy is LONG only, still include shortEntrySteps and shortExitSteps as empty arrays (and vice versa)

Return ONLY the JSON, no explanations."""


# ============================================================
# Signal (higher-timeframe) template generation
# ============================================================

SIGNAL_SYSTEM_INSTRUCTION = """\
You are an expert quantitative trading analyst generating HIGHER-TIMEFRAME SIGNAL templates.

YOUR ROLE: Extract the market conditions from the conversation and generate ONE flat list of SIMULTANEOUS conditions that together signal a single directional bias.

CRITICAL REQUIREMENTS:
1. Return ONLY pure JSON - absolutely NO markdown, NO code blocks, NO explanations
2. There are NO steps and NO ordering: every condition must hold at the same time
3. The template has exactly ONE direction (bullish or bearish), never both
4. NEVER include stop_loss or take_profit conditions
5. When referencing indicators in conditions, use the EXACT indicator id from the indicators array"""

SIGNAL_HEADER_TEMPLATE = """\
CONVERSATION TO ANALYZE:
{conversation}

SIGNAL TEMPLATE TO CREATE:
Name: "{name}"
Description: "{description}"
Category: "{category}"
Direction: "{direction}"
Timeframe: "{timeframe}\""""

SIGNAL_JSON_SCHEMA = """\
JSON SCHEMA (SIGNAL FORMAT):
{
  "name": "<template name>",
  "description": "<template description>",
  "version": "1.0",
  "category": "<template category>",
  "direction": "bullish",
  "timeframe": "4h",
  "indicators": [
    {"id": "ema_50", "type": "EMA", "label": "EMA (50)", "parameters": {"period": {"type": "number", "label": "Period", "min": 1, "max": 200, "defaultValue": 50, "required": true}}},
    {"id": "close", "type": "PRICE", "label": "Close Price", "parameters": {}}
  ],
  "signalConditions": [
    {"id": "close_above_ema", "type": "crossover", "description": "Close above EMA 50", "indicator": null, "value": null, "indicator1": "close", "indicator2": "ema_50"}
  ]
}"""

SIGNAL_RULES = """\
IMPORTANT RULES:
1. Use camelCase for every property (name, indicators, signalConditions, direction, timeframe, ...)
2. direction MUST be exactly the requested direction in lowercase
3. signalConditions and indicators MUST be present
4. Use 1-6 conditions; all of them must be satisfied simultaneously

Return ONLY the JSON, no explanations."""
