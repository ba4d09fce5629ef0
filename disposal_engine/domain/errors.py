"""Typed, catchable engine errors.

Business rejections (rule mismatch, below threshold, no candidate) are NOT
errors; they come back as ``AssignmentResult(success=False)``.
"""

from __future__ import annotations

from disposal_engine.domain.value_objects.enums import FailureKind


class EngineError(Exception):
    kind: FailureKind = FailureKind.UNEXPECTED
    retryable: bool = False


class NotFoundError(EngineError):
    kind = FailureKind.NOT_FOUND

    def __init__(self, entity: str, entity_id: int | None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ValidationError(EngineError):
    kind = FailureKind.VALIDATION


class ConcurrentModificationError(EngineError):
    kind = FailureKind.CONCURRENT_MODIFICATION
    retryable = True

    def __init__(self, entity: str, entity_id: int | None, expected_version: int):
        self.entity = entity
        self.entity_id = entity_id
        self.expected_version = expected_version
        super().__init__(
            f"{entity} {entity_id} was modified concurrently "
            f"(expected version {expected_version})"
        )


class InvalidTransitionError(EngineError):
    kind = FailureKind.INVALID_TRANSITION

    def __init__(self, current, event, target=None):
        self.current = current
        self.event = event
        self.target = target
        msg = f"Transition {_v(current)} --{_v(event)}-->"
        msg += f" {_v(target)}" if target is not None else ""
        super().__init__(f"{msg} is not allowed")


def _v(x) -> str:
    return getattr(x, "value", str(x))
