"""Numeric bounds and collection caps shared by the preference model."""

import math
from collections.abc import Iterable
from typing import Any

SLIDER_MIN = -2.0
SLIDER_MAX = 2.0

FORMALITY_MIN = 1
FORMALITY_MAX = 5

CONFIDENCE_MIN = 0.0
CONFIDENCE_MAX = 1.0

MAX_AVOID_WORDS = 50
MAX_EDIT_EXAMPLES = 5
EXAMPLE_SNIPPET_CHARS = 200


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp value into [lo, hi]. NaN has no position in the range and raises ValueError."""
    if math.isnan(value):
        raise ValueError("cannot clamp NaN")
    return max(lo, min(hi, value))


def is_finite_number(value: Any) -> bool:
    """True for real int/float values other than NaN and infinities. bool is rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero so +x and -x stay mirrored."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def clamp_slider(value: float) -> float:
    return clamp(value, SLIDER_MIN, SLIDER_MAX)


def dedupe_capped(words: Iterable[str], cap: int = MAX_AVOID_WORDS) -> list[str]:
    """Order-preserving dedupe, truncated to cap. Blank entries are dropped."""
    seen: set[str] = set()
    result: list[str] = []
    for word in words:
        cleaned = word.strip()
        if not cleaned or cleaned in seen:
            continue
        seen.add(cleaned)
        result.append(cleaned)
        if len(result) >= cap:
            break
    return result
