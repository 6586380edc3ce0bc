"""Bundled build files for devbox-docker.

These are packaged as resources and rendered into a per-project build
directory before nix is invoked.
"""

from __future__ import annotations

import importlib.resources

FLAKE_TEMPLATE = "flake.nix"


def get_resource_content(name: str) -> str:
    """Get the content of a bundled resource.

    Args:
        name: Resource file name (e.g., "flake.nix")

    Returns:
        Resource content as string

    Raises:
        FileNotFoundError: If the resource doesn't exist
    """
    resource = importlib.resources.files(__package__).joinpath(name)
    if not resource.is_file():
        raise FileNotFoundError(f"Resource not found: {name}")
    return resource.read_text()


# List of available resources
AVAILABLE_RESOURCES = [
    FLAKE_TEMPLATE,
]
