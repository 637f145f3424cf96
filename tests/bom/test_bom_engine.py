"""Unit tests for the BOM engine building blocks.

Covers:
- CSV tokenizer (quotes, escaped quotes, blank lines, CRLF)
- Normalization of header and match tokens
- Header detection (Romanian/English vocabulary, positional fallback)
- Row parsing (quantity gate, unit normalization, length)
- Weighted auto-matching and confidence tiers
- Matching statistics
"""

from __future__ import annotations

import pytest

from metalpro.bom.headers import (
    DEFAULT_COLUMN_MAPPING,
    FieldRule,
    HeaderVocabulary,
    detect_headers,
)
from metalpro.bom.matcher import (
    NO_MATCH_REASON,
    apply_manual_mapping,
    auto_match_row,
    confidence_for_score,
    find_best_match,
    score_product,
)
from metalpro.bom.models import BOMRow, BOMUnit, MatchConfidence
from metalpro.bom.normalize import normalize_string, parse_leading_float
from metalpro.bom.rows import normalize_unit, parse_quantity, parse_row
from metalpro.bom.stats import get_bom_matching_stats
from metalpro.bom.tokenizer import tokenize_csv


def _row(**fields) -> BOMRow:
    data = {"row_index": 1, "qty": 1}
    data.update(fields)
    return BOMRow(**data)


# =====================================================================
# Tokenizer
# =====================================================================
class TestTokenizer:
    def test_comma_inside_quotes_is_content(self):
        """A quoted comma stays inside the cell."""
        assert tokenize_csv('"Steel, Grade",100,5\n') == [["Steel, Grade", "100", "5"]]

    def test_escaped_quote(self):
        assert tokenize_csv('"HEA ""200""",3') == [['HEA "200"', "3"]]

    def test_blank_lines_are_dropped(self):
        grid = tokenize_csv("a,b\n\n   \nc,d\n")
        assert grid == [["a", "b"], ["c", "d"]]

    def test_crlf_and_trimming(self):
        grid = tokenize_csv(" a , b \r\nc,  d\r\n")
        assert grid == [["a", "b"], ["c", "d"]]

    def test_trailing_comma_yields_empty_cell(self):
        assert tokenize_csv("a,b,") == [["a", "b", ""]]

    def test_quoted_newline_is_not_joined(self):
        """Lines are split before quotes are considered."""
        grid = tokenize_csv('"first\nsecond",1')
        assert len(grid) == 2

    def test_comma_only_line_is_kept(self):
        assert tokenize_csv(",,\n") == [["", "", ""]]

    def test_empty_input(self):
        assert tokenize_csv("") == []


# =====================================================================
# Normalization
# =====================================================================
class TestNormalization:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("hea 200", "HEA_200"),
            ("  HEA-200 ", "HEA200"),
            ("Lungime (m)", "LUNGIME_M"),
            ("Tablă  S235JR", "TABL_S235JR"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_normalize_string(self, raw, expected):
        assert normalize_string(raw) == expected

    @pytest.mark.parametrize(
        "raw,expected",
        [("5", 5.0), ("5 buc", 5.0), ("2.5m", 2.5), (".5", 0.5), ("-3", -3.0), ("1,5", 1.0), ("1e3", 1000.0)],
    )
    def test_leading_float(self, raw, expected):
        assert parse_leading_float(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", "", "buc 5", None])
    def test_leading_float_without_number(self, raw):
        assert parse_leading_float(raw) is None


# =====================================================================
# Header detection
# =====================================================================
class TestHeaderDetection:
    def test_romanian_template_header(self):
        """All nine template headers are recognized in order."""
        grid = tokenize_csv("Familie,Grad,Standard,Dimensiune,Lungime,Cantitate,Unitate,Finisaj,Note\n")
        detection = detect_headers(grid)

        assert detection.detected is True
        assert detection.header_row == 0
        assert detection.mapping == {
            "family": 0,
            "grade": 1,
            "standard": 2,
            "dimension": 3,
            "length": 4,
            "quantity": 5,
            "unit": 6,
            "finish": 7,
            "notes": 8,
        }

    def test_english_header_on_third_row(self):
        grid = [
            ["Project X", "", ""],
            ["Rev 2", "", ""],
            ["Family", "Qty", "Unit", "Grade"],
        ]
        detection = detect_headers(grid)

        assert detection.header_row == 2
        assert detection.mapping == {"family": 0, "quantity": 1, "unit": 2, "grade": 3}

    def test_header_after_third_row_is_ignored(self):
        grid = [["x"], ["y"], ["z"], ["Familie", "Grad", "Cantitate"]]
        detection = detect_headers(grid)

        assert detection.detected is False
        assert detection.header_row == 0
        assert detection.mapping == DEFAULT_COLUMN_MAPPING

    def test_two_matches_do_not_qualify(self):
        detection = detect_headers([["Familie", "Cantitate", "Pret"]])
        assert detection.detected is False

    def test_first_qualifying_row_wins(self):
        grid = [
            ["Familie", "Grad", "Cantitate"],
            ["Family", "Grade", "Qty", "Unit"],
        ]
        assert detect_headers(grid).header_row == 0

    def test_duplicate_field_keeps_rightmost_column(self):
        grid = [["Cantitate", "Familie", "Grad", "Cantitate totala"]]
        assert detect_headers(grid).mapping["quantity"] == 3

    def test_detection_is_idempotent(self):
        grid = tokenize_csv("Family,Grade,Qty\nprofiles,S235JR,3\n")
        assert detect_headers(grid) == detect_headers(grid)

    def test_custom_vocabulary(self):
        vocabulary = HeaderVocabulary(
            rules={
                "family": FieldRule(contains=("GRUPA",)),
                "grade": FieldRule(contains=("CALITATE",)),
                "quantity": FieldRule(equals=("BUC",)),
            }
        )
        detection = detect_headers([["Grupa", "Calitate", "Buc"]], vocabulary)

        assert detection.detected is True
        assert detection.mapping == {"family": 0, "grade": 1, "quantity": 2}


# =====================================================================
# Row parsing
# =====================================================================
class TestRowParser:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("kg", BOMUnit.KG),
            ("KG", BOMUnit.KG),
            ("buc", BOMUnit.BUC),
            ("pcs", BOMUnit.BUC),
            ("m", BOMUnit.M),
            ("ml", BOMUnit.M),
            ("ton", BOMUnit.TON),
            ("tonne", BOMUnit.TON),
            ("", BOMUnit.BUC),
            ("bucket", BOMUnit.BUC),
        ],
    )
    def test_normalize_unit(self, raw, expected):
        assert normalize_unit(raw) == expected

    @pytest.mark.parametrize("raw", ["", "abc", "0", "-2", "inf"])
    def test_unusable_quantity(self, raw):
        assert parse_quantity(raw) is None

    def test_full_row(self):
        cells = ["profiles", "EN 10025", "S235JR", "HEA 200", "6", "5", "buc", "", "urgent"]
        row = parse_row(cells, 3, DEFAULT_COLUMN_MAPPING)

        assert row is not None
        assert row.row_index == 3
        assert row.family == "profiles"
        assert row.dimension == "HEA 200"
        assert row.length_m == 6.0
        assert row.qty == 5.0
        assert row.unit == BOMUnit.BUC
        assert row.finish is None
        assert row.notes == "urgent"
        assert row.match_confidence == MatchConfidence.NONE
        assert row.errors == [] and row.warnings == []

    def test_quantity_abc_drops_row(self):
        cells = ["profiles", "", "S235JR", "HEA 200", "", "abc", "buc"]
        assert parse_row(cells, 1, DEFAULT_COLUMN_MAPPING) is None

    def test_missing_columns_read_as_empty(self):
        row = parse_row(["7"], 2, {"quantity": 0, "family": 4, "unit": 9})

        assert row is not None
        assert row.family is None
        assert row.unit == BOMUnit.BUC

    def test_length_left_unset_when_blank(self):
        row = parse_row(["plates", "", "", "6mm", "", "100", "kg"], 1, DEFAULT_COLUMN_MAPPING)
        assert row.length_m is None


# =====================================================================
# Auto-matching
# =====================================================================
class TestMatcher:
    def test_family_grade_dimension_is_high(self, make_product):
        """Exact family, grade and title dimension give 95 points."""
        product = make_product(id="beam", family="profile", grade="S235JR", title="HEA200 Beam")
        row = _row(family="PROFILE", grade="S235JR", dimension="HEA200", qty=5, unit="buc")

        match = score_product(row, product)
        assert match.score == 95
        assert match.confidence == MatchConfidence.HIGH

        matched = auto_match_row(row, [product])
        assert matched.matched_product_id == "beam"
        assert matched.match_confidence == MatchConfidence.HIGH
        assert matched.match_reason == "Score: 95/100 - HEA200 Beam"

    def test_partial_family_only_is_low(self, make_product):
        product = make_product(family="profiles", grade="", title="Something", standards=[])
        row = _row(family="PROF")

        match = score_product(row, product)
        assert match.score == 20
        assert match.confidence == MatchConfidence.LOW
        assert match.reasons == ["Familie parțială"]

    def test_partial_grade_and_standard(self, make_product):
        product = make_product(family="fasteners", grade="Clasa 8.8", title="Surub M10", standards=["ISO 4017"])
        row = _row(grade="8.8", standard="iso 4017")

        match = score_product(row, product)
        assert match.score == 15 + 5
        assert match.reason == "Grad similar, Standard compatibil"

    def test_empty_row_fields_never_score(self, make_product):
        product = make_product()
        match = score_product(_row(), product)

        assert match.score == 0
        assert match.reason == "Nicio potrivire"

    def test_placeholder_cells_count_as_partial_hits(self, make_product):
        """A ``-`` normalizes to nothing, which every grade and title contains."""
        product = make_product(id="plate", family="plates", grade="S235JR", title="Tabla 6mm")
        row = _row(grade="-", dimension="-")

        match = score_product(row, product)
        assert match.score == 15 + 25
        assert match.reasons == ["Grad similar", "Dimensiune găsită în titlu"]

        matched = auto_match_row(row, [product])
        assert matched.matched_product_id == "plate"
        assert matched.match_confidence == MatchConfidence.LOW

    def test_matching_is_deterministic(self, catalog):
        row = _row(family="profiles", grade="S235JR", dimension="HEA")
        first = auto_match_row(row, catalog)
        second = auto_match_row(row, catalog)

        assert first.matched_product_id == second.matched_product_id == "prod-hea-100-s235jr"
        assert first.match_confidence == second.match_confidence

    def test_more_matching_fields_score_higher(self, make_product):
        product = make_product(family="plates", grade="S355JR", title="Tablă S355JR 15mm")
        family_only = score_product(_row(family="plates"), product)
        family_and_grade = score_product(_row(family="plates", grade="S355JR"), product)

        assert family_and_grade.score > family_only.score

    @pytest.mark.parametrize(
        "score,tier",
        [
            (100, MatchConfidence.HIGH),
            (80, MatchConfidence.HIGH),
            (79, MatchConfidence.MEDIUM),
            (50, MatchConfidence.MEDIUM),
            (49, MatchConfidence.LOW),
            (20, MatchConfidence.LOW),
            (19, MatchConfidence.NONE),
            (0, MatchConfidence.NONE),
        ],
    )
    def test_confidence_thresholds(self, score, tier):
        assert confidence_for_score(score) == tier

    def test_tie_goes_to_first_product(self, make_product):
        first = make_product(id="first", title="HEA 100")
        second = make_product(id="second", title="HEA 100")
        row = _row(family="profiles", grade="S235JR")

        product, match = find_best_match(row, [first, second])
        assert product.id == "first"
        assert match.score == 70

    def test_inactive_products_are_skipped(self, make_product):
        inactive = make_product(id="old", title="HEA 100", isActive=False)
        active = make_product(id="new", title="HEA 100 beam", grade="S355JR")
        row = _row(family="profiles", grade="S235JR", dimension="HEA 100")

        matched = auto_match_row(row, [inactive, active])
        assert matched.matched_product_id == "new"
        assert matched.match_confidence == MatchConfidence.MEDIUM

    def test_zero_score_is_no_match(self, make_product):
        row = _row(family="nonferrous", dimension="XYZ")
        matched = auto_match_row(row, [make_product()])

        assert matched.matched_product_id is None
        assert matched.match_confidence == MatchConfidence.NONE
        assert matched.match_reason == NO_MATCH_REASON

    def test_empty_catalog(self):
        matched = auto_match_row(_row(family="profiles"), [])
        assert matched.match_confidence == MatchConfidence.NONE

    def test_input_row_is_not_mutated(self, catalog):
        row = _row(family="profiles", grade="S235JR", dimension="HEA 100")
        auto_match_row(row, catalog)
        assert row.matched_product_id is None

    def test_bundled_catalog_match(self, catalog):
        row = _row(family="plates", standard="EN 10025", grade="S235JR", dimension="6mm", qty=500, unit="kg")
        matched = auto_match_row(row, catalog)

        assert matched.matched_product_id == "prod-plate-s235-6mm"
        assert matched.match_reason == "Score: 100/100 - Tablă S235JR 6mm"

    def test_manual_mapping(self, catalog):
        row = _row(family="profiles", dimension="HEB 300")
        mapped = apply_manual_mapping(row, catalog.get("prod-hea-300-s355jr"))

        assert mapped.matched_product_id == "prod-hea-300-s355jr"
        assert mapped.match_confidence == MatchConfidence.HIGH
        assert mapped.is_manually_mapped is True
        assert mapped.match_reason == "Mapare manuală: HEA 300 S355JR"


# =====================================================================
# Stats
# =====================================================================
class TestStats:
    def test_counts_and_rate(self):
        rows = [
            _row(match_confidence="high"),
            _row(match_confidence="high"),
            _row(match_confidence="medium"),
            _row(match_confidence="low"),
            _row(match_confidence="none"),
        ]
        stats = get_bom_matching_stats(rows)

        assert stats.total_rows == 5
        assert stats.high_confidence == 2
        assert stats.medium_confidence == 1
        assert stats.low_confidence == 1
        assert stats.unmatched == 1
        assert stats.match_rate == pytest.approx(60.0)

    def test_empty_rows(self):
        stats = get_bom_matching_stats([])
        assert stats.total_rows == 0
        assert stats.match_rate == 0.0

    def test_tiers_sum_to_total(self, catalog):
        rows = [
            auto_match_row(_row(family=family, grade=grade), catalog)
            for family, grade in [("profiles", "S235JR"), ("plates", ""), ("xyz", ""), ("pip", "")]
        ]
        stats = get_bom_matching_stats(rows)
        assert (
            stats.high_confidence + stats.medium_confidence + stats.low_confidence + stats.unmatched
            == stats.total_rows
        )
