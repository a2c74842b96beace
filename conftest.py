"""
Pytest configuration and fixtures for site crawler tests.
"""

import pytest
from hypothesis import settings, Verbosity, HealthCheck
import os

# Configure Hypothesis for faster test runs
settings.register_profile(
    "fast", max_examples=10, deadline=None, verbosity=Verbosity.quiet,
    suppress_health_check=[HealthCheck.too_slow]
)
settings.register_profile(
    "thorough", max_examples=100, deadline=None, verbosity=Verbosity.normal,
    suppress_health_check=[HealthCheck.too_slow]
)

settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "fast"))


def pytest_configure(config):
    """Configure pytest with custom settings."""
    import logging
    logging.getLogger("site_crawler").setLevel(logging.WARNING)
    logging.getLogger("hypothesis").setLevel(logging.WARNING)


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers."""
    for item in items:
        if any(marker.name == "given" for marker in item.iter_markers()) or "property" in item.name.lower():
            item.add_marker(pytest.mark.property)

        if "integration" in item.fspath.basename:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


@pytest.fixture
def isolated_env(monkeypatch):
    """Strip crawler environment overrides so tests see file/default config only."""
    for name in ("CRAWLER_URL", "CRAWLER_WORKERS", "CRAWLER_DEADLINE",
                 "CRAWLER_OUTPUT_FORMAT", "CRAWLER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
