"""Shared pytest fixtures for inventory error layer suites."""

from collections.abc import Generator
from pathlib import Path
import logging
import sys

import pytest
from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Provide an API test client for the application entrypoint."""
    from inventory_service.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def capture_logger() -> logging.Logger:
    """Provide an isolated logger so dispatcher tests can inspect emitted records."""
    logger = logging.getLogger("tests.inventory_service.dispatcher")
    logger.setLevel(logging.DEBUG)
    return logger
