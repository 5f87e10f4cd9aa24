"""Shared fixtures for CLI tests."""

from pathlib import Path

import pytest


@pytest.fixture
def tmp_config_path(tmp_path: Path) -> Path:
    """Provide a temporary config file path."""
    return tmp_path / "herder.yaml"


@pytest.fixture
def server_url() -> str:
    """Base URL the control commands are pointed at."""
    return "http://herder.test:8700"
