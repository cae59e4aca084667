"""Application configuration helpers."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os

DEFAULT_MALFORMED_BODY_MARKER = "JSON"


def _get_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if not raw:
        return default
    return raw


@dataclass(frozen=True)
class ErrorHandlingSettings:
    """Runtime settings for error envelope rendering."""

    malformed_body_marker: str = DEFAULT_MALFORMED_BODY_MARKER

    def safe_for_logging(self) -> dict[str, str]:
        """Return error handling settings safe for logs."""
        return {
            "malformed_body_marker": self.malformed_body_marker,
        }


@lru_cache(maxsize=1)
def get_error_handling_settings() -> ErrorHandlingSettings:
    """Load error handling settings from the environment."""
    return ErrorHandlingSettings(
        malformed_body_marker=_get_str_env("INVENTORY_MALFORMED_BODY_MARKER", DEFAULT_MALFORMED_BODY_MARKER),
    )
