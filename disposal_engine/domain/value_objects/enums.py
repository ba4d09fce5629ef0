"""Domain enums — pure Python, no external dependencies."""

from enum import Enum


class PackageStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ASSIGNED = "ASSIGNED"
    ACCEPTED = "ACCEPTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class FlowEventType(str, Enum):
    # Package level
    PACKAGE_CREATED = "PACKAGE_CREATED"
    PACKAGE_PUBLISHED = "PACKAGE_PUBLISHED"
    PACKAGE_WITHDRAWN = "PACKAGE_WITHDRAWN"
    PACKAGE_ASSIGNED = "PACKAGE_ASSIGNED"
    PACKAGE_ACCEPTED = "PACKAGE_ACCEPTED"
    PACKAGE_REJECTED = "PACKAGE_REJECTED"
    PACKAGE_STARTED = "PACKAGE_STARTED"
    PACKAGE_COMPLETED = "PACKAGE_COMPLETED"
    PACKAGE_CANCELLED = "PACKAGE_CANCELLED"

    # Individual case level
    CASE_ASSIGNED = "CASE_ASSIGNED"
    CASE_CONTACTED = "CASE_CONTACTED"
    CASE_PAYMENT_RECEIVED = "CASE_PAYMENT_RECEIVED"
    CASE_CLOSED = "CASE_CLOSED"

    # System
    ASSIGNMENT_REJECTED = "ASSIGNMENT_REJECTED"
    DATA_UPDATED = "DATA_UPDATED"
    NOTE_ADDED = "NOTE_ADDED"

    def is_package_event(self) -> bool:
        return self.name.startswith("PACKAGE_")

    def is_case_event(self) -> bool:
        return self.name.startswith("CASE_")

    def is_system_event(self) -> bool:
        return not (self.is_package_event() or self.is_case_event())


class OrganizationType(str, Enum):
    LAW_FIRM = "LAW_FIRM"
    COLLECTION_AGENCY = "COLLECTION_AGENCY"
    MEDIATION_CENTER = "MEDIATION_CENTER"


class RuleType(str, Enum):
    AUTO = "AUTO"
    SEMI_AUTO = "SEMI_AUTO"
    MANUAL = "MANUAL"


class StrategyName(str, Enum):
    INTELLIGENT = "INTELLIGENT"
    PERFORMANCE = "PERFORMANCE"
    GEOGRAPHIC = "GEOGRAPHIC"
    LOAD_BALANCE = "LOAD_BALANCE"


class FailureKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    RULE_MISMATCH = "RULE_MISMATCH"
    NO_ELIGIBLE_CANDIDATE = "NO_ELIGIBLE_CANDIDATE"
    BELOW_THRESHOLD = "BELOW_THRESHOLD"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    UNEXPECTED = "UNEXPECTED"
