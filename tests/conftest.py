"""Shared fixtures for devbox-docker tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep tests away from real config files, env overrides and caches.

    Returns the cache directory used in place of the user cache.
    """
    cache_dir = tmp_path / "cache"
    monkeypatch.setattr("platformdirs.user_cache_dir", lambda *a, **k: str(cache_dir))
    monkeypatch.setattr("platformdirs.user_config_dir", lambda *a, **k: str(tmp_path / "config"))
    monkeypatch.setattr("devbox_docker.config.get_config_paths", lambda: [])
    for name in list(os.environ):
        if name.startswith("DEVBOX_DOCKER_"):
            monkeypatch.delenv(name)
    monkeypatch.delenv("NIX_BINARY_CACHE_DIR", raising=False)
    return cache_dir


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """An empty devbox project directory."""
    path = tmp_path / "project"
    path.mkdir()
    return path
