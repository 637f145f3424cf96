"""Summary counters for a matched BOM."""

from __future__ import annotations

from typing import Iterable

from metalpro.bom.models import BOMMatchingStats, BOMRow, MatchConfidence


def get_bom_matching_stats(rows: Iterable[BOMRow]) -> BOMMatchingStats:
    """Count rows per confidence tier and compute the match rate.

    ``match_rate`` is the share of high and medium rows, in percent, and is
    ``0.0`` for an empty list.
    """

    counts = {tier: 0 for tier in MatchConfidence}
    total = 0
    for row in rows:
        counts[row.match_confidence] += 1
        total += 1

    matched = counts[MatchConfidence.HIGH] + counts[MatchConfidence.MEDIUM]
    match_rate = (matched / total) * 100 if total > 0 else 0.0

    return BOMMatchingStats(
        total_rows=total,
        high_confidence=counts[MatchConfidence.HIGH],
        medium_confidence=counts[MatchConfidence.MEDIUM],
        low_confidence=counts[MatchConfidence.LOW],
        unmatched=counts[MatchConfidence.NONE],
        match_rate=match_rate,
    )
