"""String similarity and sample-value pattern scoring."""

from __future__ import annotations

from collections import Counter
from re import Pattern
from typing import Mapping, Sequence

PATTERN_WEIGHT = 0.85


def dice_coefficient(a: str, b: str) -> float:
    """Sørensen–Dice coefficient over character bigrams (multiset semantics)."""
    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0

    bigrams = Counter(a[i:i + 2] for i in range(len(a) - 1))
    matched = 0
    for i in range(len(b) - 1):
        bigram = b[i:i + 2]
        if bigrams[bigram] > 0:
            bigrams[bigram] -= 1
            matched += 1

    return 2 * matched / ((len(a) - 1) + (len(b) - 1))


def check_sample_pattern(
    sample_rows: Sequence[Mapping[str, str]], header: str, pattern: Pattern[str]
) -> float:
    """Share of non-empty sample values under ``header`` matching ``pattern``, weighted."""
    values = [str(row.get(header) or "").strip() for row in sample_rows]
    values = [v for v in values if v]
    if not values:
        return 0.0

    matches = sum(1 for v in values if pattern.search(v))
    return matches / len(values) * PATTERN_WEIGHT
