"""Configuration management for devbox-docker.

Settings come from built-in defaults, then config files, then environment
variables. Command line flags are applied on top by each command.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path

import platformdirs

from .exceptions import ConfigError

VERSION = "0.3.0"
APP_NAME = "devbox-docker"
ENV_PREFIX = "DEVBOX_DOCKER_"

DEFAULT_IMAGE_NAME = "devbox-app"
DEFAULT_IMAGE_TAG = "latest"
DEFAULT_NIX_SYSTEM = "x86_64-linux"
DEFAULT_HOOK_TIMEOUT = 300
HANDOFF_FILENAME = "image-env.json"

# Variable names the init hook may touch that must never reach the image.
# Matched against the whole name.
DEFAULT_ENV_DENYLIST = [
    r"DEVBOX_.*",
    r"__DEVBOX_.*",
    r"__ETC_PROFILE_NIX_SOURCED",
    r".*_HASH(_.*)?",
    r"_",
    r"SHLVL",
    r"PWD",
    r"OLDPWD",
]

# Host variables handed to the isolated hook invocation.
DEFAULT_ENV_PASSTHROUGH = [
    "HOME",
    "USER",
    "PATH",
    "TMPDIR",
    "TERM",
    "NIX_PATH",
    "NIX_SSL_CERT_FILE",
    "SSL_CERT_FILE",
    "XDG_CACHE_HOME",
    "XDG_CONFIG_HOME",
    "XDG_DATA_HOME",
]


def get_config_paths() -> list[Path]:
    """Get configuration file paths in priority order (lowest to highest).

    1. /etc/devbox-docker/devbox-docker.conf
    2. ${XDG_CONFIG_HOME}/devbox-docker/devbox-docker.conf
    """
    paths = [
        Path("/etc") / APP_NAME / f"{APP_NAME}.conf",
        Path(platformdirs.user_config_dir(APP_NAME)) / f"{APP_NAME}.conf",
    ]
    return [p for p in paths if p.exists()]


def parse_config_file(path: Path) -> dict[str, str]:
    """Parse a devbox-docker config file.

    Config files use shell-like syntax:
    - key=value
    - key="value"
    - key='value'
    - Comments start with #
    """
    config: dict[str, str] = {}

    try:
        content = path.read_text()
    except OSError:
        return config

    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        match = re.match(r"^([A-Za-z_][A-Za-z0-9_]*)=(.*)$", line)
        if match:
            key = match.group(1).lower()
            value = match.group(2).strip()
            if (value.startswith('"') and value.endswith('"')) or \
               (value.startswith("'") and value.endswith("'")):
                value = value[1:-1]
            config[key] = value

    return config


@dataclass
class Config:
    """devbox-docker configuration settings."""
    image_name: str = DEFAULT_IMAGE_NAME
    image_tag: str = DEFAULT_IMAGE_TAG
    registry: str | None = None
    nix_system: str = DEFAULT_NIX_SYSTEM
    github_actions: bool = False
    hook_timeout: int = DEFAULT_HOOK_TIMEOUT
    env_denylist: list[str] = field(default_factory=lambda: list(DEFAULT_ENV_DENYLIST))
    env_passthrough: list[str] = field(default_factory=lambda: list(DEFAULT_ENV_PASSTHROUGH))
    handoff_path: str | None = None
    binary_cache_dir: str | None = None
    verbose: bool = False

    @classmethod
    def load(cls) -> Config:
        """Load configuration from files and environment variables."""
        config = cls()

        for path in get_config_paths():
            config.apply(parse_config_file(path))

        config._apply_env_vars()
        return config

    @classmethod
    def keys(cls) -> list[str]:
        """Names of all settings."""
        return [f.name for f in fields(cls)]

    def apply(self, values: dict[str, str]) -> None:
        """Apply string values keyed by setting name; unknown keys are ignored."""
        for key in self.keys():
            if key in values:
                self._set_attr(key, values[key])

    def _apply_env_vars(self) -> None:
        """Apply environment variables to config."""
        # Honored for compatibility with the builder image's Makefile
        cache_dir = os.environ.get("NIX_BINARY_CACHE_DIR")
        if cache_dir:
            self.binary_cache_dir = cache_dir

        values = {}
        for key in self.keys():
            value = os.environ.get(f"{ENV_PREFIX}{key.upper()}")
            if value is not None:
                values[key] = value
        self.apply(values)

    def _set_attr(self, attr: str, value: str) -> None:
        """Set attribute with type coercion based on the current value."""
        current = getattr(self, attr)

        if isinstance(current, bool):
            setattr(self, attr, value.lower() in ("true", "1", "yes"))
        elif isinstance(current, int):
            try:
                setattr(self, attr, int(value))
            except ValueError:
                raise ConfigError(f"Invalid integer for {attr}: {value!r}") from None
        elif isinstance(current, list):
            # Whitespace separated; regexes such as A{1,2} contain commas
            setattr(self, attr, value.split())
        elif attr in self._optional_keys():
            setattr(self, attr, value or None)
        else:
            setattr(self, attr, value)

    @classmethod
    def _optional_keys(cls) -> set[str]:
        """Settings whose empty value means unset."""
        return {f.name for f in fields(cls) if "None" in str(f.type)}


def get_cache_dir(*, ensure_exists: bool = False) -> Path:
    """Get the base cache directory (e.g., ~/.cache/devbox-docker/)."""
    path = Path(platformdirs.user_cache_dir(APP_NAME))
    if ensure_exists:
        path.mkdir(parents=True, exist_ok=True)
    return path
