from __future__ import annotations

from collections.abc import Iterable
from typing import Any


class ComplianceError(Exception):
    """Base class for errors raised by the access-control and lifecycle core."""

    code = "compliance_error"

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class UnauthenticatedError(ComplianceError):
    code = "unauthenticated"


class NotFoundError(ComplianceError):
    code = "not_found"

    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(f"{resource} not found", details={"resource": resource})


class ForbiddenError(ComplianceError):
    """Raised for role allow-list violations and tenant/factory scope violations."""

    code = "forbidden"

    def __init__(self, message: str, *, reason: str) -> None:
        self.reason = reason
        super().__init__(message, details={"reason": reason})


class InvalidStateError(ComplianceError):
    code = "invalid_state"

    def __init__(self, message: str, *, expected: Iterable[str], actual: str | None) -> None:
        self.expected = sorted(expected)
        self.actual = actual
        super().__init__(message, details={"expected": self.expected, "actual": actual})


class InvalidReferenceError(ComplianceError):
    code = "invalid_reference"

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"invalid reference: {field}", details={"field": field})


class ConflictError(ComplianceError):
    code = "conflict"

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"{field} already exists", details={"field": field})


class DomainValidationError(ComplianceError):
    code = "validation_failed"

    def __init__(self, field: str, rule: str) -> None:
        self.field = field
        self.rule = rule
        super().__init__(f"{field}: {rule}", details={"field": field, "rule": rule})
