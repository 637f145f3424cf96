"""BOM upload parsing and catalog auto-matching."""

from metalpro.bom.headers import (
    DEFAULT_COLUMN_MAPPING,
    DEFAULT_VOCABULARY,
    FieldRule,
    HeaderDetection,
    HeaderVocabulary,
    detect_headers,
)
from metalpro.bom.matcher import apply_manual_mapping, auto_match_row, score_product
from metalpro.bom.models import (
    BOMMatchingStats,
    BOMParseOptions,
    BOMRow,
    BOMTemplate,
    BOMUnit,
    BOMUploadResult,
    MatchConfidence,
)
from metalpro.bom.normalize import normalize_string
from metalpro.bom.parser import parse_bom, parse_bom_upload
from metalpro.bom.rows import parse_row
from metalpro.bom.stats import get_bom_matching_stats
from metalpro.bom.tokenizer import read_xlsx_grid, tokenize_csv

__all__ = [
    "BOMMatchingStats",
    "BOMParseOptions",
    "BOMRow",
    "BOMTemplate",
    "BOMUnit",
    "BOMUploadResult",
    "DEFAULT_COLUMN_MAPPING",
    "DEFAULT_VOCABULARY",
    "FieldRule",
    "HeaderDetection",
    "HeaderVocabulary",
    "MatchConfidence",
    "apply_manual_mapping",
    "auto_match_row",
    "detect_headers",
    "get_bom_matching_stats",
    "normalize_string",
    "parse_bom",
    "parse_bom_upload",
    "parse_row",
    "read_xlsx_grid",
    "score_product",
    "tokenize_csv",
]
