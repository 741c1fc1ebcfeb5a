# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types.
"""

import os
from collections.abc import Generator
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from src.core.config.settings import clear_settings_cache
from src.domains.gamification.registry import reset_rule_registry


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture
def test_environment() -> dict[str, str]:
    """Provide test environment variables.

    Returns:
        Dictionary of environment variables for testing.
    """
    return {
        "ENVIRONMENT": "development",
        "DEBUG": "true",
        "LOG_LEVEL": "DEBUG",
        "PROGRESS_DB_HOST": "localhost",
        "PROGRESS_DB_PORT": "5432",
        "ANALYTICS_REPORT_TIMEZONE": "UTC",
    }


@pytest.fixture
def patched_environment(test_environment: dict[str, str]) -> Generator[dict[str, str], None, None]:
    """Apply the test environment and reload settings around a test."""
    with patch.dict(os.environ, test_environment, clear=False):
        clear_settings_cache()
        yield test_environment
    clear_settings_cache()


@pytest.fixture(autouse=True)
def fresh_rule_registry() -> Generator[None, None, None]:
    """Give every test a freshly built default rule registry."""
    reset_rule_registry()
    yield
    reset_rule_registry()


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_learner_id() -> str:
    """Provide a sample learner ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def fixed_now() -> datetime:
    """Provide a fixed current time (a Wednesday, 14:00 UTC)."""
    return datetime(2025, 6, 11, 14, 0, tzinfo=timezone.utc)
