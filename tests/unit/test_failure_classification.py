"""Unit tests for most-specific-first failure classification."""

from __future__ import annotations

import json

from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from inventory_service.core.classification import RESOURCE_NOT_FOUND_MESSAGE
from inventory_service.core.classification import RULES
from inventory_service.core.classification import classify
from inventory_service.core.failures import ConstraintValidationError
from inventory_service.core.failures import DataIntegrityError
from inventory_service.core.failures import FailureKind
from inventory_service.core.failures import FieldValidationError
from inventory_service.core.failures import FieldViolation
from inventory_service.core.failures import InventoryItemAlreadyExistsError
from inventory_service.core.failures import MalformedBodyError
from inventory_service.core.failures import MissingParameterError
from inventory_service.core.failures import ResourceNotFoundError
from inventory_service.core.failures import TypeMismatchError
from inventory_service.core.failures import UnclassifiedError


class _Restock(BaseModel):
    quantity: int = Field(gt=0)


def _issue(issue_type: str, loc: tuple, msg: str) -> dict:
    return {"type": issue_type, "loc": loc, "msg": msg, "input": None}


def test_rules_follow_most_specific_first_priority() -> None:
    assert [kind for kind, _ in RULES] == [
        FailureKind.NOT_FOUND,
        FailureKind.CONFLICT,
        FailureKind.FIELD_VALIDATION,
        FailureKind.CONSTRAINT_VALIDATION,
        FailureKind.MISSING_PARAMETER,
        FailureKind.TYPE_MISMATCH,
        FailureKind.MALFORMED_BODY,
        FailureKind.DATA_INTEGRITY,
        FailureKind.UNCLASSIFIED,
    ]


def test_taxonomy_failures_classify_as_themselves() -> None:
    failures = [
        ResourceNotFoundError.inventory_item(7),
        InventoryItemAlreadyExistsError.for_product_id(42),
        FieldValidationError([FieldViolation(field="sku", message="must not be blank")]),
        ConstraintValidationError(["must be positive"]),
        MissingParameterError("productId"),
        TypeMismatchError("id", "Long"),
        MalformedBodyError(None),
        DataIntegrityError("check constraint violated"),
    ]

    for failure in failures:
        assert classify(failure) is failure


def test_domain_constructors_render_inventory_messages() -> None:
    assert ResourceNotFoundError.inventory_item(7).message == "Item de inventario 7 no encontrado"
    assert (
        ResourceNotFoundError.inventory_item_by_product_id(42).message
        == "Item de inventario no encontrado para productId: 42"
    )
    assert (
        InventoryItemAlreadyExistsError.for_product_id(42).message
        == "Ya existe un item de inventario para el productId: 42"
    )


def test_body_errors_become_field_violations_in_reported_order() -> None:
    exc = RequestValidationError(
        [
            _issue("string_too_short", ("body", "sku"), "must not be blank"),
            _issue("greater_than", ("body", "qty"), "must be positive"),
        ]
    )

    failure = classify(exc)

    assert isinstance(failure, FieldValidationError)
    assert failure.violations == [
        FieldViolation(field="sku", message="must not be blank"),
        FieldViolation(field="qty", message="must be positive"),
    ]
    assert failure.__cause__ is exc


def test_nested_body_locations_are_dotted() -> None:
    exc = RequestValidationError([_issue("missing", ("body", "location", "warehouse"), "Field required")])

    failure = classify(exc)

    assert isinstance(failure, FieldValidationError)
    assert failure.violations[0].field == "location.warehouse"


def test_missing_query_parameter_is_classified_by_name() -> None:
    exc = RequestValidationError([_issue("missing", ("query", "productId"), "Field required")])

    failure = classify(exc)

    assert isinstance(failure, MissingParameterError)
    assert failure.name == "productId"


def test_parsing_errors_map_to_type_mismatch_with_known_type() -> None:
    exc = RequestValidationError([_issue("int_parsing", ("path", "id"), "Input should be a valid integer")])

    failure = classify(exc)

    assert isinstance(failure, TypeMismatchError)
    assert failure.name == "id"
    assert failure.expected_type == "int"


def test_unknown_parsing_type_leaves_expected_type_empty() -> None:
    exc = RequestValidationError([_issue("complex_parsing", ("query", "ratio"), "Invalid")])

    failure = classify(exc)

    assert isinstance(failure, TypeMismatchError)
    assert failure.expected_type is None


def test_missing_parameter_wins_over_type_mismatch() -> None:
    exc = RequestValidationError(
        [
            _issue("int_parsing", ("query", "limit"), "Input should be a valid integer"),
            _issue("missing", ("query", "productId"), "Field required"),
        ]
    )

    assert isinstance(classify(exc), MissingParameterError)


def test_parameter_constraint_errors_become_constraint_violations() -> None:
    exc = RequestValidationError(
        [
            _issue("greater_than", ("query", "limit"), "Input should be greater than 0"),
            _issue("string_too_long", ("query", "sku"), "String should have at most 32 characters"),
        ]
    )

    failure = classify(exc)

    assert isinstance(failure, ConstraintValidationError)
    assert failure.violations == [
        "Input should be greater than 0",
        "String should have at most 32 characters",
    ]


def test_model_validation_errors_converted_by_callers_become_constraint_violations() -> None:
    try:
        _Restock(quantity=0)
    except ValidationError as exc:
        failure = classify(ConstraintValidationError.from_validation_error(exc))
    else:
        raise AssertionError("expected a validation error")

    assert isinstance(failure, ConstraintValidationError)
    assert failure.violations == ["Input should be greater than 0"]


def test_unconverted_model_validation_errors_are_server_faults() -> None:
    try:
        _Restock(quantity=0)
    except ValidationError as exc:
        failure = classify(exc)
    else:
        raise AssertionError("expected a validation error")

    assert isinstance(failure, UnclassifiedError)


def test_invalid_json_body_is_malformed_not_field_validation() -> None:
    exc = RequestValidationError([_issue("json_invalid", ("body", 1), "JSON decode error")])

    failure = classify(exc)

    assert isinstance(failure, MalformedBodyError)
    assert failure.diagnostic == "JSON decode error"


def test_json_decode_error_is_malformed_body() -> None:
    try:
        json.loads("{bad")
    except json.JSONDecodeError as exc:
        failure = classify(exc)
    else:
        raise AssertionError("expected a decode error")

    assert isinstance(failure, MalformedBodyError)


def test_integrity_error_uses_driver_diagnostic() -> None:
    driver_error = Exception('duplicate key value violates unique constraint "uq_inventory_items_product_id"')
    exc = IntegrityError("INSERT INTO inventory_items ...", {}, driver_error)

    failure = classify(exc)

    assert isinstance(failure, DataIntegrityError)
    assert failure.diagnostic == str(driver_error)


def test_anything_else_is_unclassified() -> None:
    exc = RuntimeError("connection pool exhausted")

    failure = classify(exc)

    assert isinstance(failure, UnclassifiedError)
    assert failure.cause is exc


def test_empty_request_validation_error_falls_through_to_unclassified() -> None:
    assert isinstance(classify(RequestValidationError([])), UnclassifiedError)


def test_every_kind_has_one_status_code_pair() -> None:
    pairs = {kind: (kind.status, kind.code.value) for kind in FailureKind}

    assert pairs == {
        FailureKind.NOT_FOUND: (404, "RESOURCE_NOT_FOUND"),
        FailureKind.CONFLICT: (409, "INVENTORY_ITEM_EXISTS"),
        FailureKind.FIELD_VALIDATION: (400, "VALIDATION_ERROR"),
        FailureKind.CONSTRAINT_VALIDATION: (400, "VALIDATION_ERROR"),
        FailureKind.MISSING_PARAMETER: (400, "MISSING_PARAMETER"),
        FailureKind.TYPE_MISMATCH: (400, "TYPE_MISMATCH"),
        FailureKind.MALFORMED_BODY: (400, "INVALID_REQUEST_BODY"),
        FailureKind.DATA_INTEGRITY: (400, "DATA_INTEGRITY_ERROR"),
        FailureKind.UNCLASSIFIED: (500, "INTERNAL_SERVER_ERROR"),
    }
    shared = [kind for kind in FailureKind if pairs[kind] == (400, "VALIDATION_ERROR")]
    assert shared == [FailureKind.FIELD_VALIDATION, FailureKind.CONSTRAINT_VALIDATION]


def test_missing_whole_body_is_malformed_body() -> None:
    exc = RequestValidationError([_issue("missing", ("body",), "Field required")])

    failure = classify(exc)

    assert isinstance(failure, MalformedBodyError)
    assert failure.diagnostic == "Field required"


def test_non_object_body_is_malformed_body() -> None:
    exc = RequestValidationError(
        [
            _issue(
                "model_attributes_type",
                ("body",),
                "Input should be a valid dictionary or object to extract fields from",
            )
        ]
    )

    assert isinstance(classify(exc), MalformedBodyError)


def test_enum_conversion_failure_on_parameter_is_type_mismatch() -> None:
    exc = RequestValidationError([_issue("enum", ("query", "status"), "Input should be 'active' or 'retired'")])

    failure = classify(exc)

    assert isinstance(failure, TypeMismatchError)
    assert failure.name == "status"
    assert failure.expected_type is None


def test_enum_failure_inside_body_stays_field_validation() -> None:
    exc = RequestValidationError([_issue("enum", ("body", "status"), "Input should be 'active' or 'retired'")])

    assert isinstance(classify(exc), FieldValidationError)


def test_router_not_found_uses_fixed_message() -> None:
    failure = classify(StarletteHTTPException(status_code=404))

    assert isinstance(failure, ResourceNotFoundError)
    assert failure.message == RESOURCE_NOT_FOUND_MESSAGE


def test_explicit_http_not_found_keeps_its_detail() -> None:
    failure = classify(StarletteHTTPException(status_code=404, detail="Item de inventario 9 no encontrado"))

    assert isinstance(failure, ResourceNotFoundError)
    assert failure.message == "Item de inventario 9 no encontrado"


def test_other_http_exceptions_are_unclassified() -> None:
    assert isinstance(classify(StarletteHTTPException(status_code=503)), UnclassifiedError)


class _UnprintableError(Exception):
    def __str__(self) -> str:
        raise RuntimeError("str() is broken for this error")


def test_unclassified_message_falls_back_to_type_name() -> None:
    failure = classify(_UnprintableError())

    assert isinstance(failure, UnclassifiedError)
    assert failure.message == "_UnprintableError"
