"""Seed the database from CSV files.

Usage:
    python -m disposal_engine.tools.seed_db
    python -m disposal_engine.tools.seed_db --data-dir data
    python -m disposal_engine.tools.seed_db --drop  # drop existing data first
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from disposal_engine.adapters.csv_loader.loader import (
    load_organizations,
    load_packages,
    load_rules,
)
from disposal_engine.adapters.persistence.database import async_session_factory
from disposal_engine.adapters.persistence.models import (
    AssignmentRuleModel,
    CasePackageModel,
    FlowRecordModel,
    OrganizationModel,
)
from disposal_engine.adapters.persistence.repositories import (
    SqlAssignmentRuleRepository,
    SqlCasePackageRepository,
    SqlFlowRecordRepository,
    SqlOrganizationRepository,
)
from disposal_engine.application.use_cases.manage_rules import ManageRulesUseCase
from disposal_engine.application.use_cases.package_lifecycle import PackageLifecycleUseCase
from disposal_engine.domain.entities.assignment_rule import AssignmentRule
from disposal_engine.domain.entities.case_package import CasePackage
from disposal_engine.domain.entities.organization import Organization
from disposal_engine.domain.errors import ValidationError
from disposal_engine.domain.value_objects.enums import (
    FlowEventType,
    OrganizationType,
    PackageStatus,
    RuleType,
)

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)


async def _drop_data(session: AsyncSession) -> None:
    """Delete all data in FK order."""
    for model in [FlowRecordModel, CasePackageModel, AssignmentRuleModel, OrganizationModel]:
        await session.execute(delete(model))
    await session.commit()
    logger.info("Dropped all existing data")


async def seed(data_dir: Path, drop: bool = False) -> dict[str, int]:
    """Main seed function. Returns counts of seeded records."""
    counts = {"organizations": 0, "packages": 0, "rules": 0}

    org_csv = _find_csv(data_dir, ["organizations", "orgs", "disposal"])
    package_csv = _find_csv(data_dir, ["packages", "case_packages"])
    rule_csv = _find_csv(data_dir, ["rules", "assignment_rules"])

    if not org_csv:
        raise FileNotFoundError(
            f"No organizations CSV found in {data_dir}. Expected something like organizations.csv"
        )

    async with async_session_factory() as session:
        if drop:
            await _drop_data(session)

        # 1. Organizations
        orgs = SqlOrganizationRepository(session)
        for od in load_organizations(org_csv):
            if await orgs.get_by_name(od["name"]):
                logger.debug("Organization '%s' already exists, skipping", od["name"])
                continue
            try:
                org_type = OrganizationType(od.pop("type"))
            except ValueError:
                logger.warning("Organization '%s': unknown type, using LAW_FIRM", od["name"])
                org_type = OrganizationType.LAW_FIRM
            od["service_regions"] = set(od["service_regions"])
            await orgs.save(Organization(id=None, type=org_type, **od))
            counts["organizations"] += 1
        await session.commit()

        # 2. Packages, created and published through the lifecycle
        if package_csv:
            lifecycle = PackageLifecycleUseCase(
                SqlCasePackageRepository(session), SqlFlowRecordRepository(session)
            )
            for pd in load_packages(package_csv):
                exists = await session.scalar(
                    select(func.count())
                    .select_from(CasePackageModel)
                    .where(CasePackageModel.code == pd["code"])
                )
                if exists:
                    logger.debug("Package '%s' already exists, skipping", pd["code"])
                    continue
                source_name = pd.pop("source_org")
                source = await orgs.get_by_name(source_name) if source_name else None
                status = pd.pop("status")
                try:
                    package = await lifecycle.create(
                        CasePackage(id=None, source_org_id=source.id if source else None, **pd)
                    )
                except ValidationError as e:
                    logger.warning("Package '%s' rejected: %s", pd["code"], e)
                    continue
                if status == PackageStatus.PUBLISHED.value:
                    await lifecycle.transition(package.id, FlowEventType.PACKAGE_PUBLISHED)
                elif status != PackageStatus.DRAFT.value:
                    logger.warning(
                        "Package '%s': initial status %s not supported, left as DRAFT",
                        pd["code"], status,
                    )
                counts["packages"] += 1
            await session.commit()
        else:
            logger.info("No packages CSV found, skipping package import")

        # 3. Rules
        if rule_csv:
            rules = ManageRulesUseCase(
                SqlAssignmentRuleRepository(session), SqlCasePackageRepository(session)
            )
            for rd in load_rules(rule_csv):
                try:
                    rule_type = RuleType(rd.pop("rule_type"))
                except ValueError:
                    rule_type = RuleType.AUTO
                try:
                    await rules.create(AssignmentRule(id=None, rule_type=rule_type, **rd))
                except ValidationError as e:
                    logger.warning("Rule '%s' rejected: %s", rd["name"], e)
                    continue
                counts["rules"] += 1
            await session.commit()
        else:
            logger.info("No rules CSV found, skipping rule import")

    logger.info(
        "Seed complete: %d organizations, %d packages, %d rules",
        counts["organizations"], counts["packages"], counts["rules"],
    )
    return counts


def _find_csv(data_dir: Path, name_hints: list[str]) -> Path | None:
    """Find a CSV file matching any of the name hints."""
    for f in sorted(data_dir.glob("*.csv")):
        stem = f.stem.lower()
        for hint in name_hints:
            if hint in stem:
                logger.info("Found CSV: %s (matched hint '%s')", f.name, hint)
                return f
    return None


async def _verify_data() -> None:
    """Print sanity checks after seeding."""
    async with async_session_factory() as session:
        orgs = (await session.execute(select(OrganizationModel))).scalars().all()
        packages = (await session.execute(select(CasePackageModel))).scalars().all()
        rules = (await session.execute(select(AssignmentRuleModel))).scalars().all()

        print(f"\n{'='*50}")
        print("SEED VERIFICATION")
        print(f"{'='*50}")
        print(f"Organizations: {len(orgs)}")
        print(f"Packages:      {len(packages)}")
        print(f"Rules:         {len(rules)}")

        active = sum(1 for o in orgs if o.membership_active)
        print(f"Active organizations: {active}/{len(orgs)}")
        with_history = sum(1 for o in orgs if o.recovery_rate is not None)
        print(f"Organizations with performance history: {with_history}/{len(orgs)}")

        statuses: dict[str, int] = {}
        for p in packages:
            statuses[p.status] = statuses.get(p.status, 0) + 1
        print(f"Package status distribution: {statuses}")
        print(f"Enabled rules: {sum(1 for r in rules if r.enabled)}/{len(rules)}")
        print(f"{'='*50}\n")


def main():
    parser = argparse.ArgumentParser(description="Seed the disposal engine database from CSV files")
    parser.add_argument(
        "--data-dir", type=str, default="data",
        help="Directory containing CSV files (default: data)",
    )
    parser.add_argument(
        "--drop", action="store_true",
        help="Drop existing data before seeding",
    )
    parser.add_argument(
        "--verify-only", action="store_true",
        help="Only run verification, don't seed",
    )
    args = parser.parse_args()

    data_dir = Path(args.data_dir)
    if not args.verify_only and not data_dir.exists():
        logger.error("Data directory not found: %s", data_dir)
        sys.exit(1)

    if args.verify_only:
        asyncio.run(_verify_data())
    else:
        async def run_all():
            await seed(data_dir, drop=args.drop)
            await _verify_data()
        asyncio.run(run_all())


if __name__ == "__main__":
    main()
