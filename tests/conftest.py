"""Pytest configuration and fixtures."""

import logging
from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from ledgerlink.config import Endpoints
from ledgerlink.session import MemorySessionStore
from ledgerlink.signing import RequestSigner

TEST_PASSWORD = "s3cret-pass"

FIXED_NOW = datetime(2024, 1, 5, 9, 30, 15, tzinfo=timezone.utc)

TEST_ENDPOINTS = Endpoints(
    filter_endpoint="https://api.example.com/entries/filter",
    export_endpoint="https://api.example.com/entries/export",
    upload_endpoint="https://api.example.com/entries/upload",
    category_autocomplete_endpoint="https://api.example.com/autocomplete/category",
    description_autocomplete_endpoint="https://api.example.com/autocomplete/description",
)


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep config and session files out of the real home directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg_config"))


@pytest.fixture(autouse=True)
def restore_package_logger() -> Iterator[None]:
    """Undo handlers the CLI attaches to the package logger."""
    logger = logging.getLogger("ledgerlink")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def store() -> MemorySessionStore:
    """Return a logged-in in-memory credential store."""
    store = MemorySessionStore()
    store.set_session(TEST_PASSWORD)
    return store


@pytest.fixture
def empty_store() -> MemorySessionStore:
    """Return a credential store without a session."""
    return MemorySessionStore()


@pytest.fixture
def signer(store: MemorySessionStore) -> RequestSigner:
    """Return a signer with a frozen clock."""
    return RequestSigner(store, clock=lambda: FIXED_NOW)


@pytest.fixture
def config_data() -> dict[str, Any]:
    """Return a complete config dictionary."""
    return {
        "api": {
            "filter_endpoint": TEST_ENDPOINTS.filter_endpoint,
            "export_endpoint": TEST_ENDPOINTS.export_endpoint,
            "upload_endpoint": TEST_ENDPOINTS.upload_endpoint,
            "category_autocomplete_endpoint": TEST_ENDPOINTS.category_autocomplete_endpoint,
            "description_autocomplete_endpoint": TEST_ENDPOINTS.description_autocomplete_endpoint,
        },
        "auth": {"username": "alice", "password_hash": "$2b$04$placeholder"},
        "settings": {"page_size": 20, "autocomplete_min_chars": 1},
    }


def make_records(count: int, start: int = 1) -> list[dict[str, Any]]:
    """Build flat raw entry records."""
    return [
        {
            "id": str(i),
            "date": "2024-01-05",
            "amount": "10.00",
            "cr_dr": "DR",
            "category": "Food",
            "description": f"Entry {i}",
        }
        for i in range(start, start + count)
    ]
