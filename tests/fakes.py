"""In-memory fakes of the repository ports, shared by the test suite.

Reads hand out copies so that, like a real database, a caller only sees
another writer's changes by reading again.
"""

from __future__ import annotations

import asyncio
import copy
import dataclasses
from decimal import Decimal

from disposal_engine.application.ports.case_package_repo import CasePackageRepository
from disposal_engine.application.ports.flow_repo import FlowQuery, FlowRecordRepository, Page
from disposal_engine.application.ports.organization_repo import OrganizationRepository
from disposal_engine.application.ports.rule_repo import AssignmentRuleRepository
from disposal_engine.application.ports.unit_of_work import UnitOfWork
from disposal_engine.domain.entities.assignment_rule import AssignmentRule
from disposal_engine.domain.entities.case_package import CasePackage
from disposal_engine.domain.entities.organization import Organization
from disposal_engine.domain.value_objects.enums import OrganizationType, PackageStatus


class FakeOrganizationRepo(OrganizationRepository):
    def __init__(self, organizations: list[Organization] | None = None):
        self.organizations = {o.id: o for o in organizations or []}

    async def save(self, organization):
        if organization.id is None:
            organization.id = max(self.organizations, default=0) + 1
        self.organizations[organization.id] = copy.deepcopy(organization)
        return organization

    async def get_by_id(self, organization_id):
        org = self.organizations.get(organization_id)
        return copy.deepcopy(org) if org else None

    async def list_eligible(self):
        return [copy.deepcopy(o) for o in self.organizations.values() if o.membership_active]

    async def increase_load(self, organization_id, delta_percentage):
        org = self.organizations.get(organization_id)
        if org is not None:
            org.current_load_percentage = min(100.0, org.current_load_percentage + delta_percentage)


class FakePackageRepo(CasePackageRepository):
    def __init__(self, packages: list[CasePackage] | None = None):
        self.packages = {p.id: copy.deepcopy(p) for p in packages or []}

    async def add(self, package):
        package.id = max(self.packages, default=0) + 1
        self.packages[package.id] = copy.deepcopy(package)
        return package

    async def get_by_id(self, package_id):
        stored = self.packages.get(package_id)
        snapshot = copy.deepcopy(stored) if stored else None
        # yield like real I/O so concurrent callers interleave
        await asyncio.sleep(0)
        return snapshot

    async def get_many(self, package_ids):
        return {
            pid: copy.deepcopy(self.packages[pid]) for pid in package_ids if pid in self.packages
        }

    async def save(self, package, expected_version):
        stored = self.packages.get(package.id)
        if stored is None or stored.version != expected_version:
            return False
        package.version = expected_version + 1
        self.packages[package.id] = copy.deepcopy(package)
        return True

    async def delete(self, package_id, expected_version):
        stored = self.packages.get(package_id)
        if (
            stored is None
            or stored.version != expected_version
            or stored.status != PackageStatus.DRAFT
        ):
            return False
        del self.packages[package_id]
        return True


class FakeRuleRepo(AssignmentRuleRepository):
    def __init__(self, rules: list[AssignmentRule] | None = None):
        self.rules = {r.id: copy.deepcopy(r) for r in rules or []}
        self.conflicts_to_inject = 0

    async def add(self, rule):
        rule.id = max(self.rules, default=0) + 1
        self.rules[rule.id] = copy.deepcopy(rule)
        return rule

    async def get_by_id(self, rule_id):
        rule = self.rules.get(rule_id)
        return copy.deepcopy(rule) if rule else None

    async def save(self, rule, expected_version):
        if self.conflicts_to_inject:
            self.conflicts_to_inject -= 1
            self.rules[rule.id].version += 1
            return False
        stored = self.rules.get(rule.id)
        if stored is None or stored.version != expected_version:
            return False
        rule.version = expected_version + 1
        self.rules[rule.id] = copy.deepcopy(rule)
        return True

    async def delete(self, rule_id):
        return self.rules.pop(rule_id, None) is not None

    async def list(self, enabled_only=False):
        rules = [r for r in self.rules.values() if r.enabled or not enabled_only]
        return [copy.deepcopy(r) for r in sorted(rules, key=lambda r: (r.priority, r.id))]


class FakeFlowRepo(FlowRecordRepository):
    def __init__(self):
        self.records = []

    async def append(self, record):
        saved = dataclasses.replace(record, id=len(self.records) + 1)
        self.records.append(saved)
        return saved

    async def search(self, query: FlowQuery) -> Page:
        def keep(r):
            return (
                (query.package_id is None or r.package_id == query.package_id)
                and (query.case_id is None or r.case_id == query.case_id)
                and (query.operator_id is None or r.operator_id == query.operator_id)
                and (query.operator_org_id is None or r.operator_org_id == query.operator_org_id)
                and (query.disposal_org_id is None or r.disposal_org_id == query.disposal_org_id)
                and (not query.event_types or r.event_type in query.event_types)
                and (query.start is None or r.event_time >= query.start)
                and (query.end is None or r.event_time <= query.end)
            )

        hits = sorted(
            (r for r in self.records if keep(r)),
            key=lambda r: (r.event_time, r.id),
            reverse=True,
        )
        offset = query.page * query.size
        return Page(
            items=hits[offset:offset + query.size],
            total=len(hits),
            page=query.page,
            size=query.size,
        )

    async def timeline(self, package_id):
        return sorted(
            (r for r in self.records if r.package_id == package_id),
            key=lambda r: (r.event_time, r.id),
        )

    async def count_by_event_type(self, start, end, disposal_org_id=None):
        counts = {}
        for r in self.records:
            if disposal_org_id is not None and r.disposal_org_id != disposal_org_id:
                continue
            if start is not None and r.event_time < start:
                continue
            if end is not None and r.event_time > end:
                continue
            counts[r.event_type] = counts.get(r.event_type, 0) + 1
        return counts


class FakeUnitOfWork(UnitOfWork):
    """Transactions over in-memory repos by snapshotting their state.

    A rollback restores every repo to what it held at the last commit (or at
    construction).
    """

    def __init__(self, *repos):
        self._repos = repos
        self.commits = 0
        self.rollbacks = 0
        self._snapshot = self._capture()

    def _capture(self):
        return [copy.deepcopy(vars(repo)) for repo in self._repos]

    async def commit(self):
        self.commits += 1
        self._snapshot = self._capture()

    async def rollback(self):
        self.rollbacks += 1
        for repo, state in zip(self._repos, self._snapshot):
            vars(repo).clear()
            vars(repo).update(copy.deepcopy(state))


# ─── Builders ────────────────────────────────────────────────────────


def make_org(oid: int, **overrides) -> Organization:
    values = dict(
        id=oid,
        name=f"Org {oid}",
        type=OrganizationType.LAW_FIRM,
        region="Guangdong/Shenzhen",
        monthly_capacity=1000,
        current_load_percentage=20.0,
        cases_handled=800,
        years_active=6,
        recovery_rate=0.8,
        avg_processing_days=60,
    )
    values.update(overrides)
    return Organization(**values)


def make_package(pid: int, **overrides) -> CasePackage:
    values = dict(
        id=pid,
        code=f"PKG-{pid or 0:04d}",
        name=f"Package {pid}",
        case_count=100,
        total_amount=Decimal("500000"),
        source_org_id=None,
        status=PackageStatus.PUBLISHED,
        region="Guangdong/Shenzhen",
        case_type="CREDIT_CARD",
        expected_disposal_days=90,
    )
    values.update(overrides)
    return CasePackage(**values)


def make_rule(rid: int, **overrides) -> AssignmentRule:
    values = dict(id=rid, name=f"Rule {rid}")
    values.update(overrides)
    return AssignmentRule(**values)
