"""Command modules for devbox-docker."""

from .build import run as build
from .duplicates import run as duplicates
from .env import run as env

__all__ = ["build", "duplicates", "env"]
