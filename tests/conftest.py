"""
Pytest configuration and fixtures for devbootstrap tests.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Generator, Optional

import pytest

from devbootstrap.config import DevBootstrapConfig, reset_config
from devbootstrap.logger import ROOT_LOGGER_NAME
from devbootstrap.models import PrerequisiteSnapshot
from helpers import Harness, make_snapshot


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def clean_config(monkeypatch) -> Generator[None, None, None]:
    """Isolate each test from DEVBOOTSTRAP_* variables and the config singleton."""
    for key in list(os.environ):
        if key.startswith("DEVBOOTSTRAP_"):
            monkeypatch.delenv(key)
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def clean_logging() -> Generator[None, None, None]:
    """Drop handlers installed by configure_logging (CLI tests swap stderr)."""
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)


# ============================================================================
# Run Fixtures
# ============================================================================


@pytest.fixture
def compose_file(tmp_path) -> Path:
    path = tmp_path / "docker-compose.yml"
    path.write_text("services:\n  gateway:\n    image: nginx\n")
    return path


@pytest.fixture
def test_config(tmp_path) -> DevBootstrapConfig:
    return DevBootstrapConfig(
        temp_dir=str(tmp_path / "downloads"),
        compose_file=str(tmp_path / "docker-compose.yml"),
        manifest_path=str(tmp_path / "versions.yaml"),
        settle_seconds=10,
        min_free_disk_gb=10,
    )


@pytest.fixture
def harness_factory(test_config):
    def factory(snapshot: Optional[PrerequisiteSnapshot] = None, **overrides) -> Harness:
        return Harness(test_config, snapshot or make_snapshot(), **overrides)

    return factory
