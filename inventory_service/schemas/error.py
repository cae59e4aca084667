"""Error envelope schema and factories shared across API handlers."""

from __future__ import annotations

from datetime import datetime
from datetime import timedelta
from datetime import timezone
from enum import Enum
from typing import Any
import time

from fastapi import status as http_status
from pydantic import BaseModel
from pydantic import ConfigDict

_WALL_ANCHOR = datetime.now(timezone.utc)
_MONOTONIC_ANCHOR = time.monotonic()


class ErrorCode(str, Enum):
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    INVENTORY_ITEM_EXISTS = "INVENTORY_ITEM_EXISTS"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_PARAMETER = "MISSING_PARAMETER"
    TYPE_MISMATCH = "TYPE_MISMATCH"
    INVALID_REQUEST_BODY = "INVALID_REQUEST_BODY"
    DATA_INTEGRITY_ERROR = "DATA_INTEGRITY_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    REQUEST_REJECTED = "REQUEST_REJECTED"


def _now() -> datetime:
    # Anchored wall clock advanced by the monotonic clock, so instants never go backwards.
    return _WALL_ANCHOR + timedelta(seconds=time.monotonic() - _MONOTONIC_ANCHOR)


class ErrorResponse(BaseModel):
    """Top-level API error response envelope."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    status: int
    code: ErrorCode
    message: str
    path: str

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready envelope body."""
        return self.model_dump(mode="json")


def of(status: int, code: ErrorCode, message: str, path: str) -> ErrorResponse:
    """Build an envelope for an arbitrary status/code pair."""
    return ErrorResponse(
        timestamp=_now(),
        status=status,
        code=code,
        message=message,
        path=path,
    )


def not_found(message: str, path: str) -> ErrorResponse:
    """Build a 404 envelope for missing resources."""
    return of(http_status.HTTP_404_NOT_FOUND, ErrorCode.RESOURCE_NOT_FOUND, message, path)


def validation(message: str, path: str) -> ErrorResponse:
    """Build a 400 envelope for validation failures."""
    return of(http_status.HTTP_400_BAD_REQUEST, ErrorCode.VALIDATION_ERROR, message, path)


def generic(message: str, path: str) -> ErrorResponse:
    """Build a 500 envelope for unexpected failures."""
    return of(http_status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.INTERNAL_SERVER_ERROR, message, path)
