"""Custom exceptions for devbox-docker."""

from __future__ import annotations


class DevboxDockerError(Exception):
    """Base exception for devbox-docker errors."""

    exit_code: int = 1

    def __init__(self, message: str, exit_code: int | None = None) -> None:
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class UsageError(DevboxDockerError):
    """Invalid combination of command line options."""

    pass


class ManifestError(DevboxDockerError):
    """The project manifest is missing or cannot be parsed."""

    pass


class ToolError(DevboxDockerError):
    """An external tool exited with a non-zero status."""

    def __init__(self, tool: str, returncode: int, message: str | None = None) -> None:
        super().__init__(
            message or f"{tool} failed with exit code {returncode}",
            exit_code=returncode or 1,
        )
        self.tool = tool
        self.returncode = returncode


class ToolNotFoundError(DevboxDockerError):
    """A required external tool is not installed."""

    exit_code = 127


class ConfigError(DevboxDockerError):
    """A configuration value is invalid."""

    pass
