"""Row-level extraction of BOM lines from tokenized cells."""

from __future__ import annotations

import math
from typing import Mapping, Optional, Sequence

from metalpro.bom.models import BOMRow, BOMUnit, MatchConfidence
from metalpro.bom.normalize import parse_leading_float


def _cell(cells: Sequence[str], mapping: Mapping[str, int], name: str) -> str:
    index = mapping.get(name)
    if index is None or index < 0 or index >= len(cells):
        return ""
    value = cells[index]
    return value.strip() if value else ""


def normalize_unit(raw: str) -> BOMUnit:
    """Map a free-text unit cell onto :class:`BOMUnit`.

    Rules are checked in order on the lowercased text: ``kg``; ``buc``/``pc``
    /``pcs``; any ``m`` (``kg`` was ruled out already); ``ton``/``tonne``.
    Anything else, including an empty cell, counts as pieces.
    """

    text = (raw or "").lower()
    if "kg" in text:
        return BOMUnit.KG
    if "buc" in text or "pc" in text or "pcs" in text:
        return BOMUnit.BUC
    if "m" in text:
        return BOMUnit.M
    if "ton" in text or "tonne" in text:
        return BOMUnit.TON
    return BOMUnit.BUC


def parse_quantity(raw: str) -> Optional[float]:
    """Return a usable quantity or ``None`` when the row must be dropped."""

    if not raw:
        return None
    value = parse_leading_float(raw)
    if value is None or not math.isfinite(value) or value <= 0:
        return None
    return value


def parse_row(
    cells: Sequence[str],
    row_index: int,
    mapping: Mapping[str, int],
) -> Optional[BOMRow]:
    """Build a :class:`BOMRow` from raw cells, or ``None`` for unusable rows.

    Quantity is the only hard gate: absent, non-numeric or non-positive values
    make the row vanish without an error entry. Missing columns read as empty.
    """

    quantity = parse_quantity(_cell(cells, mapping, "quantity"))
    if quantity is None:
        return None

    length_raw = _cell(cells, mapping, "length")
    length_m = parse_leading_float(length_raw) if length_raw else None
    if length_m is not None and not math.isfinite(length_m):
        length_m = None

    return BOMRow(
        row_index=row_index,
        family=_cell(cells, mapping, "family") or None,
        standard=_cell(cells, mapping, "standard") or None,
        grade=_cell(cells, mapping, "grade") or None,
        dimension=_cell(cells, mapping, "dimension") or None,
        length_m=length_m,
        qty=quantity,
        unit=normalize_unit(_cell(cells, mapping, "unit")),
        finish=_cell(cells, mapping, "finish") or None,
        notes=_cell(cells, mapping, "notes") or None,
        match_confidence=MatchConfidence.NONE,
        errors=[],
        warnings=[],
    )
