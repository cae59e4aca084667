"""Closed failure taxonomy raised by inventory-service collaborators."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from fastapi import status
from pydantic import ValidationError as PydanticValidationError

from inventory_service.schemas.error import ErrorCode


class FailureKind(str, Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FIELD_VALIDATION = "field_validation"
    CONSTRAINT_VALIDATION = "constraint_validation"
    MISSING_PARAMETER = "missing_parameter"
    TYPE_MISMATCH = "type_mismatch"
    MALFORMED_BODY = "malformed_body"
    DATA_INTEGRITY = "data_integrity"
    UNCLASSIFIED = "unclassified"

    @property
    def status(self) -> int:
        return _KIND_RESPONSES[self][0]

    @property
    def code(self) -> ErrorCode:
        return _KIND_RESPONSES[self][1]


_KIND_RESPONSES: dict[FailureKind, tuple[int, ErrorCode]] = {
    FailureKind.NOT_FOUND: (status.HTTP_404_NOT_FOUND, ErrorCode.RESOURCE_NOT_FOUND),
    FailureKind.CONFLICT: (status.HTTP_409_CONFLICT, ErrorCode.INVENTORY_ITEM_EXISTS),
    FailureKind.FIELD_VALIDATION: (status.HTTP_400_BAD_REQUEST, ErrorCode.VALIDATION_ERROR),
    FailureKind.CONSTRAINT_VALIDATION: (status.HTTP_400_BAD_REQUEST, ErrorCode.VALIDATION_ERROR),
    FailureKind.MISSING_PARAMETER: (status.HTTP_400_BAD_REQUEST, ErrorCode.MISSING_PARAMETER),
    FailureKind.TYPE_MISMATCH: (status.HTTP_400_BAD_REQUEST, ErrorCode.TYPE_MISMATCH),
    FailureKind.MALFORMED_BODY: (status.HTTP_400_BAD_REQUEST, ErrorCode.INVALID_REQUEST_BODY),
    FailureKind.DATA_INTEGRITY: (status.HTTP_400_BAD_REQUEST, ErrorCode.DATA_INTEGRITY_ERROR),
    FailureKind.UNCLASSIFIED: (status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.INTERNAL_SERVER_ERROR),
}


@dataclass(frozen=True)
class FieldViolation:
    """Single field-level validation issue."""

    field: str
    message: str


class InventoryServiceError(Exception):
    """Base class for every failure kind the error layer recognizes."""

    kind: ClassVar[FailureKind]

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ResourceNotFoundError(InventoryServiceError):
    """Raised when a requested inventory resource does not exist."""

    kind = FailureKind.NOT_FOUND

    @classmethod
    def inventory_item(cls, item_id: object) -> ResourceNotFoundError:
        return cls(f"Item de inventario {item_id} no encontrado")

    @classmethod
    def inventory_item_by_product_id(cls, product_id: object) -> ResourceNotFoundError:
        return cls(f"Item de inventario no encontrado para productId: {product_id}")


class InventoryItemAlreadyExistsError(InventoryServiceError):
    """Raised when an inventory item already exists for a product."""

    kind = FailureKind.CONFLICT

    @classmethod
    def for_product_id(cls, product_id: object) -> InventoryItemAlreadyExistsError:
        return cls(f"Ya existe un item de inventario para el productId: {product_id}")


class FieldValidationError(InventoryServiceError):
    """Raised when request body fields fail validation."""

    kind = FailureKind.FIELD_VALIDATION

    def __init__(self, violations: Sequence[FieldViolation]) -> None:
        self.violations = list(violations)
        super().__init__(f"{len(self.violations)} invalid field(s)")


class ConstraintValidationError(InventoryServiceError):
    """Raised when path/query constraints or model invariants are violated."""

    kind = FailureKind.CONSTRAINT_VALIDATION

    def __init__(self, violations: Sequence[str]) -> None:
        self.violations = list(violations)
        super().__init__(f"{len(self.violations)} constraint violation(s)")

    @classmethod
    def from_validation_error(cls, exc: PydanticValidationError) -> ConstraintValidationError:
        """Report a pydantic error raised while checking client input as a constraint failure."""
        return cls([str(issue.get("msg", "Invalid value")) for issue in exc.errors()])


class MissingParameterError(InventoryServiceError):
    kind = FailureKind.MISSING_PARAMETER

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Missing required parameter `{name}`")


class TypeMismatchError(InventoryServiceError):
    kind = FailureKind.TYPE_MISMATCH

    def __init__(self, name: str, expected_type: str | None = None) -> None:
        self.name = name
        self.expected_type = expected_type
        super().__init__(f"Parameter `{name}` has the wrong type (expected {expected_type or 'unknown'})")


class MalformedBodyError(InventoryServiceError):
    """Raised when the request body cannot be read or parsed."""

    kind = FailureKind.MALFORMED_BODY

    def __init__(self, diagnostic: str | None = None) -> None:
        self.diagnostic = diagnostic
        super().__init__(diagnostic or "Malformed request body")


class DataIntegrityError(InventoryServiceError):
    """Raised when persistence rejects a write on integrity grounds."""

    kind = FailureKind.DATA_INTEGRITY

    def __init__(self, diagnostic: str) -> None:
        self.diagnostic = diagnostic
        super().__init__(diagnostic)


class UnclassifiedError(InventoryServiceError):
    """Wraps any failure outside the recognized taxonomy."""

    kind = FailureKind.UNCLASSIFIED

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(_describe(cause))


def _describe(cause: BaseException) -> str:
    try:
        text = str(cause)
    except Exception:
        text = ""
    return text or type(cause).__name__
