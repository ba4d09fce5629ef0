"""CSV loader — reads and normalizes organization, package and rule data files."""

from __future__ import annotations

import csv
import logging
from pathlib import Path

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

logger = logging.getLogger(__name__)


def _sniff_dialect(sample: str) -> type[csv.Dialect]:
    """Detect the delimiter (comma/semicolon/tab) from the header line."""
    if not sample:
        return csv.excel

    first_line = sample.splitlines()[0]
    counts = {d: first_line.count(d) for d in (";", ",", "\t")}
    best_delim = max(counts, key=counts.get)
    if counts[best_delim] == 0:
        return csv.excel

    class DynamicDialect(csv.excel):
        delimiter = best_delim

    return DynamicDialect


def _read_csv(file_path: Path, encoding: str = "utf-8-sig") -> list[dict[str, str | None]]:
    """Read a CSV file with BOM handling and column normalization."""
    with open(file_path, encoding=encoding, newline="") as f:
        sample = f.read(4096)
        f.seek(0)
        reader = csv.DictReader(f, dialect=_sniff_dialect(sample))
        if reader.fieldnames is None:
            raise ValueError(f"CSV file {file_path} has no header row")

        col_map = {col: normalize_column_name(col) for col in reader.fieldnames}
        rows = [
            {col_map[k]: clean_string(v) for k, v in raw_row.items() if k is not None}
            for raw_row in reader
        ]

    logger.info(
        "Loaded %d rows from %s (columns: %s)", len(rows), file_path.name, list(col_map.values())
    )
    return rows


def _first(row: dict, *keys: str) -> str | None:
    for key in keys:
        value = row.get(key)
        if value:
            return value
    return None


def load_organizations(file_path: Path) -> list[dict]:
    """Load the organizations CSV.

    Expected columns (after normalization):
        name, type, region, service_regions, monthly_capacity, current_load,
        active, contact_person, contact_phone, email, cases_handled,
        years_active, recovery_rate, avg_processing_days
    """
    organizations = []
    for row in _read_csv(file_path):
        name = _first(row, "name", "organization", "org_name")
        if not name:
            logger.warning("Skipping organization row without a name: %s", row)
            continue
        recovery = parse_float(row.get("recovery_rate"))
        if recovery is not None and recovery > 1:
            recovery = recovery / 100  # given as a percentage
        organizations.append({
            "name": name,
            "type": (_first(row, "type", "org_type") or "LAW_FIRM").upper(),
            "region": row.get("region"),
            "service_regions": parse_list(row.get("service_regions")),
            "monthly_capacity": parse_int(_first(row, "monthly_capacity", "capacity")),
            "current_load_percentage": parse_float(
                _first(row, "current_load_percentage", "current_load", "load")
            ) or 0.0,
            "membership_active": parse_bool(_first(row, "membership_active", "active")),
            "contact_person": row.get("contact_person"),
            "contact_phone": _first(row, "contact_phone", "phone"),
            "email": row.get("email"),
            "cases_handled": parse_int(row.get("cases_handled")),
            "years_active": parse_float(row.get("years_active")),
            "recovery_rate": recovery,
            "avg_processing_days": parse_float(row.get("avg_processing_days")),
        })
    logger.info("Parsed %d organizations", len(organizations))
    return organizations


def load_packages(file_path: Path) -> list[dict]:
    """Load the case packages CSV.

    Expected columns (after normalization):
        code, name, case_count, total_amount, source_org, region,
        case_type, expected_disposal_days, description, status
    """
    packages = []
    for row in _read_csv(file_path):
        code = _first(row, "code", "package_code")
        case_count = parse_int(row.get("case_count"))
        total_amount = parse_decimal(row.get("total_amount"))
        if not code or not case_count or total_amount is None:
            logger.warning("Skipping incomplete package row: %s", row)
            continue
        packages.append({
            "code": code,
            "name": row.get("name") or code,
            "case_count": case_count,
            "total_amount": total_amount,
            "source_org": _first(row, "source_org", "source_organization"),
            "region": row.get("region"),
            "case_type": row.get("case_type"),
            "expected_disposal_days": parse_int(row.get("expected_disposal_days")),
            "description": row.get("description"),
            "status": (row.get("status") or "DRAFT").upper(),
        })
    logger.info("Parsed %d packages", len(packages))
    return packages


def load_rules(file_path: Path) -> list[dict]:
    """Load the assignment rules CSV.

    Expected columns (after normalization):
        name, priority, enabled, min_matching_score, amount_range, regions,
        case_types, include_organizations, exclude_organizations, strategy,
        max_assignments, description
    """
    rules = []
    for row in _read_csv(file_path):
        name = row.get("name")
        if not name:
            logger.warning("Skipping rule row without a name: %s", row)
            continue
        priority = parse_int(row.get("priority"))
        rules.append({
            "name": name,
            "rule_type": (row.get("rule_type") or "AUTO").upper(),
            "priority": 100 if priority is None else priority,
            "enabled": parse_bool(row.get("enabled")),
            "min_matching_score": parse_float(row.get("min_matching_score")) or 0.0,
            "target_amount_range": _first(row, "target_amount_range", "amount_range"),
            "target_regions": parse_list(_first(row, "target_regions", "regions")),
            "target_case_types": parse_list(_first(row, "target_case_types", "case_types")),
            "include_organizations": parse_id_list(row.get("include_organizations")),
            "exclude_organizations": parse_id_list(row.get("exclude_organizations")),
            "strategy_name": _first(row, "strategy_name", "strategy"),
            "max_assignments": parse_int(row.get("max_assignments")),
            "description": row.get("description"),
        })
    logger.info("Parsed %d rules", len(rules))
    return rules
