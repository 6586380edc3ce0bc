"""Integration test specific fixtures."""

from __future__ import annotations

import shutil

import pytest

# Mark all tests in this directory as integration tests
pytestmark = pytest.mark.integration


@pytest.fixture
def devbox_available() -> None:
    """Skip unless a real devbox binary is installed."""
    if shutil.which("devbox") is None:
        pytest.skip("devbox is not installed")
