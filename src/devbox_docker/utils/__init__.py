"""Helpers shared by the devbox-docker commands."""
