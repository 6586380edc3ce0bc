"""devbox-docker env command implementation.

Runs only the environment reconciler and writes the hand-off file.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from ..config import VERSION, Config
from ..utils.log import get_logger, setup_logging
from ..utils.reconciler import reconcile_environment, write_handoff
from ..utils.templates import get_handoff_path


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for devbox-docker env."""
    parser = argparse.ArgumentParser(
        prog="devbox-docker env",
        description="Print the environment variables added by the project's init_hook",
    )
    parser.add_argument(
        "-p", "--project",
        default=".",
        help="devbox project directory (default: current directory)",
    )
    parser.add_argument(
        "-o", "--output",
        help="hand-off file to write (default: the project's build directory)",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        help="seconds to wait for the init_hook (0 disables the limit)",
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


def run(args: list[str] | None = None) -> int:
    """Run the env command.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    config = Config.load()
    if parsed.verbose:
        config.verbose = True
    if parsed.timeout is not None:
        config.hook_timeout = parsed.timeout

    setup_logging(config.verbose, quiet=True)

    project_dir = Path(parsed.project).resolve()
    entries = reconcile_environment(project_dir, config)

    output = parsed.output or config.handoff_path or get_handoff_path(project_dir)
    path = write_handoff(entries, Path(output))
    get_logger().debug("Wrote %s", path)

    print(json.dumps(entries, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(run())
