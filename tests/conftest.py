# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests
"""

import pytest

from coursepulse.core.config import Settings
from coursepulse.core.config.settings import ReportSettings, StoreSettings
from coursepulse.domains.reporting import ReportService
from tests.helpers import RecordingStore, seed_scenario_a, seed_scenario_b


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Provide settings independent of the process environment."""
    return Settings(
        environment="development",
        store=StoreSettings(timeout_seconds=2.0, max_concurrency=4),
        reports=ReportSettings(),
    )


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def store() -> RecordingStore:
    """Provide an empty recording store."""
    return RecordingStore()


@pytest.fixture
def scenario_a(store: RecordingStore) -> RecordingStore:
    """Provide a store seeded with Scenario A."""
    seed_scenario_a(store)
    return store


@pytest.fixture
def scenario_b(store: RecordingStore) -> RecordingStore:
    """Provide a store seeded with Scenario B."""
    seed_scenario_b(store)
    return store


@pytest.fixture
def service(store: RecordingStore, settings: Settings) -> ReportService:
    """Provide a report service over the test store."""
    return ReportService.for_store(store, settings)


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
