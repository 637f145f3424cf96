"""Header-row detection for BOM grids.

Column names come in Romanian or English and in any case, so every cell is
reduced with :func:`normalize_string` and compared against substring rules
per BOM field. Files without a recognizable header are assumed to follow the
downloadable template's column order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from metalpro.bom.normalize import normalize_string

# Number of leading rows inspected for a header
HEADER_SCAN_ROWS = 3
# Minimum recognized cells for a row to count as a header
MIN_HEADER_MATCHES = 3

BOM_FIELDS: Tuple[str, ...] = (
    "family",
    "standard",
    "grade",
    "dimension",
    "length",
    "quantity",
    "unit",
    "finish",
    "notes",
)

DEFAULT_COLUMN_MAPPING: Dict[str, int] = {name: index for index, name in enumerate(BOM_FIELDS)}


@dataclass(frozen=True)
class FieldRule:
    """Recognizes a normalized header cell as one BOM field."""

    contains: Tuple[str, ...] = ()
    equals: Tuple[str, ...] = ()

    def matches(self, normalized: str) -> bool:
        if not normalized:
            return False
        if normalized in self.equals:
            return True
        return any(token in normalized for token in self.contains)


@dataclass(frozen=True)
class HeaderVocabulary:
    """Field -> rule table. Iteration order is the field order of a row."""

    rules: Dict[str, FieldRule] = field(default_factory=dict)

    def fields_for(self, normalized: str) -> List[str]:
        return [name for name, rule in self.rules.items() if rule.matches(normalized)]


DEFAULT_VOCABULARY = HeaderVocabulary(
    rules={
        "family": FieldRule(contains=("FAMIL",)),
        "standard": FieldRule(contains=("STANDARD",)),
        "grade": FieldRule(contains=("GRAD", "GRADE")),
        "dimension": FieldRule(contains=("DIMENSI", "DIMENSION")),
        "length": FieldRule(contains=("LUNGIME", "LENGTH")),
        "quantity": FieldRule(contains=("CANTIT", "QUANT"), equals=("QTY",)),
        "unit": FieldRule(contains=("UNITAT", "UNIT")),
        "finish": FieldRule(contains=("FINISAJ", "FINISH")),
        "notes": FieldRule(contains=("NOTE",)),
    }
)


@dataclass(frozen=True)
class HeaderDetection:
    header_row: int
    mapping: Dict[str, int]
    detected: bool = True


def detect_headers(
    rows: Sequence[Sequence[str]],
    vocabulary: Optional[HeaderVocabulary] = None,
) -> HeaderDetection:
    """Find the header row among the first rows of ``rows``.

    A row qualifies when at least :data:`MIN_HEADER_MATCHES` of its cells are
    recognized by the vocabulary; the first qualifying row wins. When several
    cells map to the same field the right-most one is kept. Without a
    qualifying row the positional template mapping is returned with
    ``header_row=0`` and ``detected=False``.
    """

    vocab = vocabulary or DEFAULT_VOCABULARY

    for row_index in range(min(HEADER_SCAN_ROWS, len(rows))):
        normalized_row = [normalize_string(cell) for cell in rows[row_index]]
        recognized = [cell for cell in normalized_row if vocab.fields_for(cell)]
        if len(recognized) < MIN_HEADER_MATCHES:
            continue

        mapping: Dict[str, int] = {}
        for column, cell in enumerate(normalized_row):
            for name in vocab.fields_for(cell):
                mapping[name] = column
        return HeaderDetection(header_row=row_index, mapping=mapping)

    return HeaderDetection(header_row=0, mapping=dict(DEFAULT_COLUMN_MAPPING), detected=False)
