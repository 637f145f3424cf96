"""Weighted auto-matching of BOM rows against the product catalog.

Each active product gets a score from independent field signals:

=========  ==========================================================  ======
Signal     Condition                                                   Points
=========  ==========================================================  ======
Family     normalized row family equals the product family             40
Family     product family contains the row family                      20
Grade      normalized row grade equals the product grade               30
Grade      product grade contains the row grade                        15
Dimension  product title contains the row dimension                    25
Standard   one of the product standards equals the row standard        5
=========  ==========================================================  ======

The best score decides the confidence tier. The weights and thresholds are
what the mapping UI color-codes on, so changing them changes the contract.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from metalpro.bom.models import BOMRow, MatchConfidence
from metalpro.bom.normalize import normalize_string
from metalpro.catalog.models import Product

logger = logging.getLogger(__name__)

FAMILY_EXACT_POINTS = 40
FAMILY_PARTIAL_POINTS = 20
GRADE_EXACT_POINTS = 30
GRADE_PARTIAL_POINTS = 15
DIMENSION_POINTS = 25
STANDARD_POINTS = 5

HIGH_THRESHOLD = 80
MEDIUM_THRESHOLD = 50
LOW_THRESHOLD = 20

NO_MATCH_REASON = "Nu s-au găsit produse compatibile"
NO_SIGNAL_REASON = "Nicio potrivire"


@dataclass(frozen=True)
class MatchScore:
    score: int
    confidence: MatchConfidence
    reasons: List[str] = field(default_factory=list)

    @property
    def reason(self) -> str:
        return ", ".join(self.reasons) or NO_SIGNAL_REASON


def confidence_for_score(score: int) -> MatchConfidence:
    if score >= HIGH_THRESHOLD:
        return MatchConfidence.HIGH
    if score >= MEDIUM_THRESHOLD:
        return MatchConfidence.MEDIUM
    if score >= LOW_THRESHOLD:
        return MatchConfidence.LOW
    return MatchConfidence.NONE


def score_product(row: BOMRow, product: Product) -> MatchScore:
    """Score one product against one row.

    Signals are gated on the raw row value being present and compared on the
    normalized strings, so a placeholder such as ``"-"`` normalizes to ``""``
    and is contained in every non-empty product grade or title.
    """

    score = 0
    reasons: List[str] = []

    row_family = row.parsed_family or normalize_string(row.family)
    if row_family:
        product_family = normalize_string(product.family)
        if row_family == product_family:
            score += FAMILY_EXACT_POINTS
            reasons.append("Familie identică")
        elif row_family in product_family:
            score += FAMILY_PARTIAL_POINTS
            reasons.append("Familie parțială")

    if row.grade and product.grade:
        row_grade = normalize_string(row.grade)
        product_grade = normalize_string(product.grade)
        if row_grade == product_grade:
            score += GRADE_EXACT_POINTS
            reasons.append("Grad identic")
        elif row_grade in product_grade:
            score += GRADE_PARTIAL_POINTS
            reasons.append("Grad similar")

    if row.dimension and product.title:
        if normalize_string(row.dimension) in normalize_string(product.title):
            score += DIMENSION_POINTS
            reasons.append("Dimensiune găsită în titlu")

    if row.standard and product.standards:
        row_standard = normalize_string(row.standard)
        if any(normalize_string(std) == row_standard for std in product.standards):
            score += STANDARD_POINTS
            reasons.append("Standard compatibil")

    return MatchScore(score=score, confidence=confidence_for_score(score), reasons=reasons)


def find_best_match(row: BOMRow, products: Iterable[Product]) -> Optional[tuple[Product, MatchScore]]:
    """Return the first active product with the strictly highest score."""

    best: Optional[tuple[Product, MatchScore]] = None
    for product in products:
        if not product.is_active:
            continue
        match = score_product(row, product)
        if best is None or match.score > best[1].score:
            best = (product, match)
    return best


def auto_match_row(row: BOMRow, products: Iterable[Product]) -> BOMRow:
    """Annotate ``row`` with its best catalog match.

    Returns a copy; the input row is left untouched. A best score of 0 counts
    as no match at all.
    """

    best = find_best_match(row, products)
    if best is not None and best[1].score > 0:
        product, match = best
        logger.debug(
            "BOM row %d matched %s with score %d (%s)",
            row.row_index,
            product.id,
            match.score,
            match.reason,
        )
        return row.model_copy(
            update={
                "matched_product_id": product.id,
                "match_confidence": match.confidence,
                "match_reason": f"Score: {match.score}/100 - {product.title}",
            }
        )

    return row.model_copy(
        update={
            "matched_product_id": None,
            "match_confidence": MatchConfidence.NONE,
            "match_reason": NO_MATCH_REASON,
        }
    )


def apply_manual_mapping(row: BOMRow, product: Product) -> BOMRow:
    """Record an operator's manual choice of ``product`` for ``row``."""

    return row.model_copy(
        update={
            "matched_product_id": product.id,
            "match_confidence": MatchConfidence.HIGH,
            "match_reason": f"Mapare manuală: {product.title}",
            "is_manually_mapped": True,
        }
    )
