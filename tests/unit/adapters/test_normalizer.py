"""Tests for CSV normalizer functions."""

from decimal import Decimal

import pytest

from disposal_engine.adapters.csv_loader.normalizer import (
    clean_string,
    normalize_column_name,
    parse_bool,
    parse_decimal,
    parse_float,
    parse_id_list,
    parse_int,
    parse_list,
)

# ─── normalize_column_name ───────────────────────────────────────────


def test_strip_and_lowercase():
    assert normalize_column_name("  Region  ") == "region"


def test_remove_bom():
    assert normalize_column_name("\ufeffName") == "name"


def test_spaces_and_dashes_become_underscore():
    assert normalize_column_name("Monthly Capacity") == "monthly_capacity"
    assert normalize_column_name("case-count") == "case_count"


def test_non_breaking_space():
    assert normalize_column_name("Total\u00a0Amount") == "total_amount"


def test_punctuation_removed():
    assert normalize_column_name("Recovery Rate (%)") == "recovery_rate_"


# ─── cell parsers ────────────────────────────────────────────────────


def test_clean_string():
    assert clean_string("  x ") == "x"
    assert clean_string("   ") is None
    assert clean_string(None) is None


def test_parse_list_keeps_province_city_pairs():
    assert parse_list("Guangdong/Shenzhen; Zhejiang, Hangzhou | Hunan") == [
        "Guangdong/Shenzhen", "Zhejiang, Hangzhou", "Hunan",
    ]


def test_parse_id_list():
    assert parse_id_list("1, 2;3 x 4") == [1, 2, 3, 4]
    assert parse_id_list(None) == []


def test_parse_decimal_with_thousand_separators():
    assert parse_decimal("1,250,000.50") == Decimal("1250000.50")
    assert parse_decimal("abc") is None


@pytest.mark.parametrize("raw,expected", [("4", 4), ("4.0", 4), ("1,200", 1200), ("x", None), ("", None)])
def test_parse_int(raw, expected):
    assert parse_int(raw) == expected


def test_parse_float_strips_percent():
    assert parse_float("85%") == 85.0


@pytest.mark.parametrize("raw,expected", [("yes", True), ("0", False), ("false", False), ("", True)])
def test_parse_bool(raw, expected):
    assert parse_bool(raw) is expected
