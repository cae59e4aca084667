"""Translate raised failures into error envelopes plus one log line each.

The dispatcher is the terminal handler of a failed request: it classifies the
failure (see ``inventory_service.core.classification``), renders the client
message for its kind, logs at the severity fixed for that kind and returns a
fresh ``ErrorResponse``. It never raises.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
import logging

from inventory_service.core.classification import classify
from inventory_service.core.config import ErrorHandlingSettings
from inventory_service.core.config import get_error_handling_settings
from inventory_service.core.failures import ConstraintValidationError
from inventory_service.core.failures import DataIntegrityError
from inventory_service.core.failures import FailureKind
from inventory_service.core.failures import FieldValidationError
from inventory_service.core.failures import InventoryServiceError
from inventory_service.core.failures import MalformedBodyError
from inventory_service.core.failures import MissingParameterError
from inventory_service.core.failures import TypeMismatchError
from inventory_service.core.failures import UnclassifiedError
from inventory_service.schemas import error as envelopes
from inventory_service.schemas.error import ErrorResponse

MESSAGE_DELIMITER = "; "

MISSING_PARAMETER_TEMPLATE = "Parámetro requerido faltante: {name}"
TYPE_MISMATCH_TEMPLATE = "El parámetro '{name}' debe ser de tipo {type_name}"
UNKNOWN_TYPE_NAME = "desconocido"

MALFORMED_BODY_MESSAGE = "El cuerpo de la petición no es válido. Verifica el formato JSON."
MALFORMED_JSON_MESSAGE = "Error al parsear JSON: formato inválido"

DATA_INTEGRITY_MESSAGE = (
    "Error de integridad de datos. Verifica que todos los campos requeridos estén presentes."
)
DUPLICATE_ITEM_MESSAGE = "Ya existe un item de inventario para este producto"
REFERENTIAL_INTEGRITY_MESSAGE = (
    "No se puede realizar la operación debido a restricciones de integridad referencial"
)
UNIQUENESS_MARKERS = ("unique", "duplicate")
FOREIGN_KEY_MARKERS = ("foreign key", "FK")

INTERNAL_ERROR_MESSAGE = (
    "Ocurrió un error inesperado. Por favor, contacta al administrador del sistema."
)

Factory = Callable[[str, str], ErrorResponse]

_FACTORIES: dict[FailureKind, Factory] = {
    FailureKind.NOT_FOUND: envelopes.not_found,
    FailureKind.FIELD_VALIDATION: envelopes.validation,
    FailureKind.CONSTRAINT_VALIDATION: envelopes.validation,
    FailureKind.UNCLASSIFIED: envelopes.generic,
}


def _build_envelope(kind: FailureKind, message: str, path: str) -> ErrorResponse:
    factory = _FACTORIES.get(kind)
    if factory is not None:
        return factory(message, path)
    return envelopes.of(kind.status, kind.code, message, path)


class ErrorDispatcher:
    """Map any raised failure to exactly one ``ErrorResponse``."""

    def __init__(
        self,
        *,
        logger: logging.Logger | None = None,
        settings: ErrorHandlingSettings | None = None,
    ) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._settings = settings or get_error_handling_settings()
        self._renderers: dict[FailureKind, Callable[[Any, str], str]] = {
            FailureKind.NOT_FOUND: self._render_not_found,
            FailureKind.CONFLICT: self._render_conflict,
            FailureKind.FIELD_VALIDATION: self._render_field_validation,
            FailureKind.CONSTRAINT_VALIDATION: self._render_constraint_validation,
            FailureKind.MISSING_PARAMETER: self._render_missing_parameter,
            FailureKind.TYPE_MISMATCH: self._render_type_mismatch,
            FailureKind.MALFORMED_BODY: self._render_malformed_body,
            FailureKind.DATA_INTEGRITY: self._render_data_integrity,
            FailureKind.UNCLASSIFIED: self._render_unclassified,
        }

    def dispatch(self, exc: BaseException, path: str) -> ErrorResponse:
        """Classify ``exc`` and return the envelope for the request at ``path``."""
        try:
            failure = classify(exc)
            message = self._renderers[failure.kind](failure, path)
        except Exception:
            self._logger.exception("Error dispatch failed in %s; falling back to internal error", path)
            return envelopes.generic(INTERNAL_ERROR_MESSAGE, path)

        return _build_envelope(failure.kind, message, path)

    def _render_not_found(self, failure: InventoryServiceError, path: str) -> str:
        self._logger.warning("Resource not found in %s: %s", path, failure.message)
        return failure.message

    def _render_conflict(self, failure: InventoryServiceError, path: str) -> str:
        self._logger.warning("Duplicate inventory item in %s: %s", path, failure.message)
        return failure.message

    def _render_field_validation(self, failure: FieldValidationError, path: str) -> str:
        message = MESSAGE_DELIMITER.join(
            f"{violation.field}: {violation.message}" for violation in failure.violations
        )
        self._logger.warning("Validation error in %s: %s", path, message)
        return message

    def _render_constraint_validation(self, failure: ConstraintValidationError, path: str) -> str:
        message = MESSAGE_DELIMITER.join(failure.violations)
        self._logger.warning("Constraint violation in %s: %s", path, message)
        return message

    def _render_missing_parameter(self, failure: MissingParameterError, path: str) -> str:
        message = MISSING_PARAMETER_TEMPLATE.format(name=failure.name)
        self._logger.warning("Missing parameter in %s: %s", path, message)
        return message

    def _render_type_mismatch(self, failure: TypeMismatchError, path: str) -> str:
        message = TYPE_MISMATCH_TEMPLATE.format(
            name=failure.name,
            type_name=failure.expected_type or UNKNOWN_TYPE_NAME,
        )
        self._logger.warning("Argument type mismatch in %s: %s", path, message)
        return message

    def _render_malformed_body(self, failure: MalformedBodyError, path: str) -> str:
        self._logger.warning("Unreadable request body in %s: %s", path, failure.diagnostic)

        diagnostic = failure.diagnostic
        if diagnostic is not None and self._settings.malformed_body_marker in diagnostic:
            return MALFORMED_JSON_MESSAGE
        return MALFORMED_BODY_MESSAGE

    def _render_data_integrity(self, failure: DataIntegrityError, path: str) -> str:
        self._logger.error("Data integrity violation in %s: %s", path, failure.diagnostic)

        diagnostic = failure.diagnostic or ""
        if any(marker in diagnostic for marker in UNIQUENESS_MARKERS):
            return DUPLICATE_ITEM_MESSAGE
        if any(marker in diagnostic for marker in FOREIGN_KEY_MARKERS):
            return REFERENTIAL_INTEGRITY_MESSAGE
        return DATA_INTEGRITY_MESSAGE

    def _render_unclassified(self, failure: InventoryServiceError, path: str) -> str:
        cause = failure.cause if isinstance(failure, UnclassifiedError) else failure
        self._logger.error(
            "Unexpected error in %s: %s",
            path,
            failure.message,
            exc_info=(type(cause), cause, cause.__traceback__),
        )
        return INTERNAL_ERROR_MESSAGE
