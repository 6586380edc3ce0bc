"""devbox-docker duplicates command implementation.

Reports packages that appear more than once in an image's /nix/store,
which happens when devbox packages come from different nixpkgs revisions.
"""

from __future__ import annotations

import argparse
import re
import sys

from ..config import DEFAULT_IMAGE_NAME, DEFAULT_IMAGE_TAG, VERSION
from ..exceptions import ToolError
from ..utils.console import console, create_duplicates_table, green, print_error, yellow
from ..utils.log import setup_logging
from ..utils.tools import find_tool

# Store paths look like: <hash>-<name>-<version>
_STORE_HASH_RE = re.compile(r"^[a-z0-9]+-")


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for devbox-docker duplicates."""
    parser = argparse.ArgumentParser(
        prog="devbox-docker duplicates",
        description="Detect duplicate packages in a Docker image's /nix/store",
    )
    parser.add_argument(
        "image",
        nargs="?",
        default=f"{DEFAULT_IMAGE_NAME}:{DEFAULT_IMAGE_TAG}",
        help="image to inspect (default: %(default)s)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="show more verbosity",
    )
    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"devbox-docker: {VERSION}",
    )
    return parser


def strip_store_hash(entry: str) -> str:
    """Return the store path name without its hash prefix."""
    return _STORE_HASH_RE.sub("", entry, count=1)


def find_duplicates(entries: list[str]) -> dict[str, list[str]]:
    """Group store entries by name, keeping only names seen more than once.

    Args:
        entries: Basenames from /nix/store

    Returns:
        Mapping of package name to its store entries, sorted by name
    """
    groups: dict[str, list[str]] = {}
    for entry in entries:
        entry = entry.strip()
        if not entry or entry.startswith("."):
            continue
        groups.setdefault(strip_store_hash(entry), []).append(entry)

    return {
        name: sorted(paths)
        for name, paths in sorted(groups.items())
        if len(paths) > 1
    }


def list_store(image: str) -> list[str]:
    """List /nix/store of ``image`` using a throwaway container."""
    docker = find_tool("docker")
    result = docker.run("run", "--rm", image, "ls", "-1", "/nix/store/")
    if result.returncode != 0:
        raise ToolError(
            "docker",
            result.returncode,
            f"Cannot list /nix/store in {image}: {result.stderr.strip()}",
        )
    return result.stdout.splitlines()


def run(args: list[str] | None = None) -> int:
    """Run the duplicates command.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        1 if duplicates were found, 0 otherwise
    """
    parser = create_parser()
    parsed = parser.parse_args(args)
    setup_logging(parsed.verbose)

    print_error(f"==> Checking for duplicate packages in {parsed.image}...")
    duplicates = find_duplicates(list_store(parsed.image))

    if not duplicates:
        print_error(green("No duplicate packages found"))
        return 0

    print_error(yellow("WARNING: Found duplicate packages (same name, different store hashes):"))
    table = create_duplicates_table()
    for name, paths in duplicates.items():
        table.add_row(name, "\n".join(paths))
    console.print(table)

    print_error(
        "These duplicates may indicate packages built from different nixpkgs revisions.\n"
        "Consider pinning all devbox packages to the same nixpkgs release."
    )
    return 1


if __name__ == "__main__":
    sys.exit(run())
