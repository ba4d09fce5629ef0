"""Tests for rule evaluation and validation."""

from decimal import Decimal

import pytest

from disposal_engine.domain.errors import ValidationError
from disposal_engine.domain.policies.rule_engine import (
    allows_organization,
    matches,
    parse_amount_range,
    validate_rule,
)
from tests.fakes import make_package, make_rule


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("1000000-10000000", (Decimal("1000000"), Decimal("10000000"))),
        (" 0 - 500.5 ", (Decimal("0"), Decimal("500.5"))),
        ("100-100", (Decimal("100"), Decimal("100"))),
    ],
)
def test_parse_amount_range(raw, expected):
    assert parse_amount_range(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", "1000000", "-5", "10-1", "a-b", "1-2-3", None])
def test_parse_amount_range_rejects_malformed(raw):
    assert parse_amount_range(raw) is None


def test_rule_without_conditions_matches():
    result = matches(make_rule(1), make_package(1))
    assert result.matched
    assert result.reasons == ["All rule conditions satisfied"]


def test_amount_inside_range_matches():
    rule = make_rule(1, target_amount_range="1000000-10000000")
    pkg = make_package(1, total_amount=Decimal("5000000"))
    result = matches(rule, pkg)
    assert result.matched
    assert "amount_range" in result.matched_criteria


def test_amount_outside_range_mismatches():
    rule = make_rule(1, target_amount_range="1000000-10000000")
    result = matches(rule, make_package(1, total_amount=Decimal("999999.99")))
    assert not result.matched
    assert result.unmatched_criteria == ["amount_range"]


def test_range_bounds_inclusive():
    rule = make_rule(1, target_amount_range="100-200")
    assert matches(rule, make_package(1, total_amount=Decimal("100"))).matched
    assert matches(rule, make_package(1, total_amount=Decimal("200"))).matched


def test_malformed_range_is_ignored_with_reason():
    rule = make_rule(1, target_amount_range="lots")
    result = matches(rule, make_package(1))
    assert result.matched
    assert any("malformed" in r for r in result.reasons)


def test_region_matches_province_case_insensitively():
    rule = make_rule(1, target_regions=["guangdong"])
    assert matches(rule, make_package(1, region="Guangdong/Shenzhen")).matched


def test_region_mismatch():
    rule = make_rule(1, target_regions=["Zhejiang"])
    result = matches(rule, make_package(1))
    assert not result.matched
    assert "target_regions" in result.unmatched_criteria


def test_unknown_package_region_fails_region_condition():
    rule = make_rule(1, target_regions=["Guangdong"])
    assert not matches(rule, make_package(1, region=None, description=None)).matched


def test_case_type_condition():
    rule = make_rule(1, target_case_types=["CREDIT_CARD", "MORTGAGE"])
    assert matches(rule, make_package(1, case_type="credit_card")).matched
    assert not matches(rule, make_package(1, case_type="AUTO_LOAN")).matched


def test_include_fully_excluded_mismatches():
    rule = make_rule(1, include_organizations=[1, 2], exclude_organizations=[1, 2])
    result = matches(rule, make_package(1))
    assert not result.matched
    assert "organizations" in result.unmatched_criteria


def test_exhausted_quota_mismatches():
    rule = make_rule(1, max_assignments=2, usage_count=5, success_count=2)
    result = matches(rule, make_package(1))
    assert not result.matched
    assert "max_assignments" in result.unmatched_criteria


def test_every_failed_condition_reported():
    rule = make_rule(
        1, target_amount_range="1-2", target_regions=["Hunan"], target_case_types=["X"]
    )
    result = matches(rule, make_package(1))
    assert set(result.unmatched_criteria) == {"amount_range", "target_regions", "target_case_types"}
    assert len(result.reasons) == 3


def test_disabled_flag_not_evaluated_here():
    assert matches(make_rule(1, enabled=False), make_package(1)).matched


@pytest.mark.parametrize(
    "include,exclude,org_id,allowed",
    [
        ([], [], 7, True),
        ([1, 2], [], 1, True),
        ([1, 2], [], 3, False),
        ([], [3], 3, False),
        ([1, 2], [2], 2, False),
    ],
)
def test_allows_organization(include, exclude, org_id, allowed):
    rule = make_rule(1, include_organizations=include, exclude_organizations=exclude)
    assert allows_organization(rule, org_id) is allowed


def test_validate_accepts_well_formed_rule():
    validate_rule(make_rule(1, target_amount_range="0-100", strategy_name="geographic"))


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": " "},
        {"min_matching_score": 1.5},
        {"min_matching_score": -0.1},
        {"target_amount_range": "500"},
        {"target_amount_range": "900-100"},
        {"strategy_name": "FASTEST"},
        {"max_assignments": -1},
    ],
)
def test_validate_rejects(overrides):
    with pytest.raises(ValidationError):
        validate_rule(make_rule(1, **overrides))
