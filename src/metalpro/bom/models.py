"""Typed records produced and consumed by the BOM parsing engine."""

from __future__ import annotations

import math
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MatchConfidence(str, Enum):
    """Confidence tier of an auto-match, used by the UI for color-coding."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


class BOMUnit(str, Enum):
    """Units accepted on a BOM line."""

    KG = "kg"
    BUC = "buc"
    M = "m"
    TON = "ton"


class BOMRow(BaseModel):
    """One parsed BOM line plus its auto-matching outcome."""

    row_index: int = Field(description="Index of the line in the tokenized file")
    family: Optional[str] = None
    standard: Optional[str] = None
    grade: Optional[str] = None
    dimension: Optional[str] = None
    length_m: Optional[float] = None
    qty: float = Field(gt=0)
    unit: BOMUnit = BOMUnit.BUC
    finish: Optional[str] = None
    notes: Optional[str] = None

    parsed_family: Optional[str] = None

    matched_product_id: Optional[str] = None
    match_confidence: MatchConfidence = MatchConfidence.NONE
    match_reason: Optional[str] = None

    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    is_manually_mapped: bool = False

    model_config = ConfigDict(extra="forbid")

    @field_validator("qty")
    @classmethod
    def _finite_qty(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("qty must be finite")
        return value


class BOMParseOptions(BaseModel):
    """Caller-tunable knobs for :func:`metalpro.bom.parser.parse_bom`."""

    column_mapping: Optional[Dict[str, int]] = None
    auto_detect_headers: bool = True
    skip_empty_rows: bool = True
    # Cells are always trimmed by the tokenizer; kept for payload compatibility.
    trim_whitespace: bool = True

    model_config = ConfigDict(extra="forbid")


class BOMUploadResult(BaseModel):
    """Aggregate result of one BOM parse run. Not persisted."""

    file_name: str
    file_size: int
    uploaded_at: str
    total_rows: int
    rows: List[BOMRow] = Field(default_factory=list)
    parse_errors: Optional[List[str]] = None

    model_config = ConfigDict(extra="forbid")


class BOMMatchingStats(BaseModel):
    total_rows: int
    high_confidence: int = 0
    medium_confidence: int = 0
    low_confidence: int = 0
    unmatched: int = 0
    match_rate: float = 0.0

    model_config = ConfigDict(extra="forbid")


class BOMTemplate(BaseModel):
    headers: List[str]
    sample_rows: List[List[str]]
    instructions: str

    model_config = ConfigDict(extra="forbid")
