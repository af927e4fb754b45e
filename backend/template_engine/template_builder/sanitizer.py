"""
PURPOSE: Strip presentation wrapping from raw model output.

Removes markdown code fences and any prose before/after the JSON body. It
does not repair JSON; anything still broken is left for the validator to
reject. sanitize(sanitize(x)) == sanitize(x).

CALLED BY: template_builder/pipeline.py (SANITIZING stage)
"""

import re

_LEADING_FENCE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*(?:\r?\n|$)")
_TRAILING_FENCE = re.compile(r"(?:\r?\n)?```\s*$")

_CLOSERS = {"{": "}", "[": "]"}


def sanitize(text: str) -> str:
    """
    PURPOSE: Return the JSON-looking core of a model reply.

    Args:
        text: Raw backend output

    Returns:
        str: Trimmed text without code fences. If it does not start with '{'
            or '[', the slice from the first opener to the last closer of the
            same bracket family; the trimmed text when there is none.
    """
    cleaned = (text or "").strip()
    previous = None
    while cleaned != previous:
        previous = cleaned
        cleaned = _LEADING_FENCE.sub("", cleaned, count=1)
        cleaned = _TRAILING_FENCE.sub("", cleaned, count=1).strip()

    if not cleaned or cleaned[0] in _CLOSERS:
        return cleaned

    starts = [i for i in (cleaned.find("{"), cleaned.find("[")) if i != -1]
    if not starts:
        return cleaned
    start = min(starts)
    end = cleaned.rfind(_CLOSERS[cleaned[start]])
    if end <= start:
        return cleaned
    return cleaned[start:end + 1]
