"""Most-specific-first classification of raised failures into the taxonomy."""

from __future__ import annotations

from collections.abc import Callable
from collections.abc import Mapping
from typing import Any
import json
import logging

from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from inventory_service.core.failures import ConstraintValidationError
from inventory_service.core.failures import DataIntegrityError
from inventory_service.core.failures import FailureKind
from inventory_service.core.failures import FieldValidationError
from inventory_service.core.failures import FieldViolation
from inventory_service.core.failures import InventoryItemAlreadyExistsError
from inventory_service.core.failures import InventoryServiceError
from inventory_service.core.failures import MalformedBodyError
from inventory_service.core.failures import MissingParameterError
from inventory_service.core.failures import ResourceNotFoundError
from inventory_service.core.failures import TypeMismatchError
from inventory_service.core.failures import UnclassifiedError

logger = logging.getLogger(__name__)

Rule = Callable[[BaseException], InventoryServiceError | None]

RESOURCE_NOT_FOUND_MESSAGE = "Recurso no encontrado"

_LOCATION_PREFIXES = frozenset({"body", "query", "path", "header", "cookie"})

# pydantic parsing error types and the type name reported to clients.
_PARSING_TYPES: dict[str, str | None] = {
    "int_parsing": "int",
    "int_from_float": "int",
    "float_parsing": "float",
    "bool_parsing": "bool",
    "uuid_parsing": "UUID",
    "date_parsing": "date",
    "date_from_datetime_parsing": "date",
    "datetime_parsing": "datetime",
    "datetime_from_date_parsing": "datetime",
    "time_parsing": "time",
    "decimal_parsing": "Decimal",
    "enum": None,
}

# Issues reported against the body as a whole rather than one of its fields.
_WHOLE_BODY_TYPES = frozenset({"missing", "model_type", "model_attributes_type", "dict_type"})


def _issues(exc: RequestValidationError) -> list[Mapping[str, Any]]:
    return [issue for issue in exc.errors() if isinstance(issue, Mapping)]


def _location(issue: Mapping[str, Any]) -> tuple[Any, ...]:
    location = issue.get("loc", ())
    if isinstance(location, (tuple, list)):
        return tuple(location)
    return (location,)


def _format_location(location: tuple[Any, ...]) -> str:
    filtered = [str(part) for part in location if part not in _LOCATION_PREFIXES]
    if filtered:
        return ".".join(filtered)

    if not location:
        return "request"

    return str(location[0])


def _is_body_issue(issue: Mapping[str, Any]) -> bool:
    location = _location(issue)
    return bool(location) and location[0] == "body"


def _is_json_issue(issue: Mapping[str, Any]) -> bool:
    return issue.get("type") == "json_invalid"


def _is_whole_body_issue(issue: Mapping[str, Any]) -> bool:
    return _location(issue) == ("body",) and issue.get("type") in _WHOLE_BODY_TYPES


def _is_missing_issue(issue: Mapping[str, Any]) -> bool:
    return issue.get("type") == "missing"


def _is_parsing_issue(issue: Mapping[str, Any]) -> bool:
    issue_type = str(issue.get("type", ""))
    return issue_type in _PARSING_TYPES or issue_type.endswith("_parsing")


def _parameter_name(issue: Mapping[str, Any]) -> str:
    location = _location(issue)
    if len(location) > 1 or (location and location[0] not in _LOCATION_PREFIXES):
        return str(location[-1])
    return _format_location(location)


def _issue_message(issue: Mapping[str, Any]) -> str:
    return str(issue.get("msg", "Invalid value"))


def _chained(failure: InventoryServiceError, cause: BaseException) -> InventoryServiceError:
    failure.__cause__ = cause
    return failure


def _match_not_found(exc: BaseException) -> InventoryServiceError | None:
    if isinstance(exc, ResourceNotFoundError):
        return exc
    if not isinstance(exc, StarletteHTTPException) or exc.status_code != 404:
        return None

    # Router misses carry the bare reason phrase; explicit raises carry their own message.
    detail = exc.detail if isinstance(exc.detail, str) else ""
    if not detail or detail == "Not Found":
        detail = RESOURCE_NOT_FOUND_MESSAGE
    return _chained(ResourceNotFoundError(detail), exc)


def _match_conflict(exc: BaseException) -> InventoryServiceError | None:
    return exc if isinstance(exc, InventoryItemAlreadyExistsError) else None


def _match_field_validation(exc: BaseException) -> InventoryServiceError | None:
    if isinstance(exc, FieldValidationError):
        return exc
    if not isinstance(exc, RequestValidationError):
        return None

    issues = _issues(exc)
    if any(_is_json_issue(issue) or _is_whole_body_issue(issue) for issue in issues):
        return None
    if not any(_is_body_issue(issue) for issue in issues):
        return None

    violations = [
        FieldViolation(field=_format_location(_location(issue)), message=_issue_message(issue))
        for issue in issues
    ]
    return _chained(FieldValidationError(violations), exc)


def _match_constraint_validation(exc: BaseException) -> InventoryServiceError | None:
    if isinstance(exc, ConstraintValidationError):
        return exc
    if not isinstance(exc, RequestValidationError):
        return None

    issues = _issues(exc)
    if not issues:
        return None
    for issue in issues:
        if _is_body_issue(issue) or _is_missing_issue(issue) or _is_parsing_issue(issue):
            return None
    return _chained(ConstraintValidationError([_issue_message(issue) for issue in issues]), exc)


def _match_missing_parameter(exc: BaseException) -> InventoryServiceError | None:
    if isinstance(exc, MissingParameterError):
        return exc
    if not isinstance(exc, RequestValidationError):
        return None

    for issue in _issues(exc):
        if not _is_body_issue(issue) and _is_missing_issue(issue):
            return _chained(MissingParameterError(_parameter_name(issue)), exc)
    return None


def _match_type_mismatch(exc: BaseException) -> InventoryServiceError | None:
    if isinstance(exc, TypeMismatchError):
        return exc
    if not isinstance(exc, RequestValidationError):
        return None

    for issue in _issues(exc):
        if not _is_body_issue(issue) and _is_parsing_issue(issue):
            expected = _PARSING_TYPES.get(str(issue.get("type")))
            return _chained(TypeMismatchError(_parameter_name(issue), expected), exc)
    return None


def _match_malformed_body(exc: BaseException) -> InventoryServiceError | None:
    if isinstance(exc, MalformedBodyError):
        return exc
    if isinstance(exc, json.JSONDecodeError):
        return _chained(MalformedBodyError(str(exc)), exc)
    if not isinstance(exc, RequestValidationError):
        return None

    for issue in _issues(exc):
        if _is_json_issue(issue) or _is_whole_body_issue(issue):
            return _chained(MalformedBodyError(_issue_message(issue)), exc)
    return None


def _match_data_integrity(exc: BaseException) -> InventoryServiceError | None:
    if isinstance(exc, DataIntegrityError):
        return exc
    if not isinstance(exc, IntegrityError):
        return None

    diagnostic = str(exc.orig) if exc.orig is not None else str(exc)
    return _chained(DataIntegrityError(diagnostic), exc)


def _match_unclassified(exc: BaseException) -> InventoryServiceError:
    if isinstance(exc, UnclassifiedError):
        return exc
    return UnclassifiedError(exc)


RULES: tuple[tuple[FailureKind, Rule], ...] = (
    (FailureKind.NOT_FOUND, _match_not_found),
    (FailureKind.CONFLICT, _match_conflict),
    (FailureKind.FIELD_VALIDATION, _match_field_validation),
    (FailureKind.CONSTRAINT_VALIDATION, _match_constraint_validation),
    (FailureKind.MISSING_PARAMETER, _match_missing_parameter),
    (FailureKind.TYPE_MISMATCH, _match_type_mismatch),
    (FailureKind.MALFORMED_BODY, _match_malformed_body),
    (FailureKind.DATA_INTEGRITY, _match_data_integrity),
    (FailureKind.UNCLASSIFIED, _match_unclassified),
)


def classify(exc: BaseException) -> InventoryServiceError:
    """Return the taxonomy failure for ``exc`` using the first matching rule."""
    for kind, rule in RULES:
        try:
            failure = rule(exc)
        except Exception:
            logger.debug("Classification rule %s failed; trying next rule", kind.value, exc_info=True)
            continue
        if failure is not None:
            return failure

    return UnclassifiedError(exc)
