"""Mood color buckets.

A signed mood total in [-50, 50] maps to one of five steps of a green
(positive) or blue (negative) palette. Step 0 is the darkest. Zero is neutral.
"""

from __future__ import annotations

import math
from typing import NamedTuple

MAX_ABS = 50

# darkest -> lightest
GREEN_STEPS = ("#1b9744", "#20b351", "#25d05e", "#3adc70", "#56e184")  # +50..+10
BLUE_STEPS = ("#104fcd", "#1259e7", "#296aee", "#437df0", "#5e8ff2")  # -50..-10
NEUTRAL_COLOR = "#fced9f"
NO_DATA_COLOR = "#d1d5db"

_FAMILIES = {"green": GREEN_STEPS, "blue": BLUE_STEPS}


class MoodBucket(NamedTuple):
    family: str  # "green" | "blue" | "neutral"
    index: int | None


NEUTRAL = MoodBucket("neutral", None)


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def bucket_index(raw: float) -> int | None:
    """
    0..4 darkness index for a score, or None for neutral.
    Magnitudes round up: 10 -> 4, 11 -> 3, 50 -> 0.
    """
    if isinstance(raw, float) and math.isnan(raw):
        return None
    total = clamp(raw, -MAX_ABS, MAX_ABS)
    if total == 0:
        return None
    bucket = math.ceil(abs(total) / 10)  # 1..5
    return 5 - bucket


def classify(raw: float) -> MoodBucket:
    idx = bucket_index(raw)
    if idx is None:
        return NEUTRAL
    return MoodBucket("green" if raw > 0 else "blue", idx)


def color_for(bucket: MoodBucket) -> str:
    if bucket.index is None:
        return NEUTRAL_COLOR
    return _FAMILIES[bucket.family][bucket.index]


def mood_color(raw: float) -> str:
    return color_for(classify(raw))
