"""Command-line interface router for devbox-docker.

Routes commands to the appropriate subcommand handlers.
"""

from __future__ import annotations

import argparse
import sys

from .config import VERSION
from .exceptions import DevboxDockerError
from .utils.console import print_error, print_msg, red


def main(argv: list[str] | None = None) -> int:
    """Main entry point for devbox-docker CLI.

    Args:
        argv: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    try:
        return _main(argv)
    except DevboxDockerError as e:
        print_error(red(f"Error: {e}"))
        return e.exit_code


def _main(argv: list[str] | None = None) -> int:
    """Internal main function that may raise exceptions."""
    parser = argparse.ArgumentParser(
        prog="devbox-docker",
        description="Build layered container images from devbox projects",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"devbox-docker: {VERSION}",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="command")

    # add_help=False so --help reaches the command's own parser
    subparsers.add_parser("build", help="Build and load an image from a devbox project", add_help=False)
    subparsers.add_parser("env", help="Print the environment added by the project's init_hook", add_help=False)
    subparsers.add_parser("duplicates", help="Detect duplicate packages in an image's /nix/store", add_help=False)

    if argv is None:
        argv = sys.argv[1:]

    # Handle "version" as a positional command (alias for --version)
    if argv and argv[0] == "version":
        print_msg(f"devbox-docker: {VERSION}")
        return 0

    # Handle "help" as a positional command (alias for --help)
    if argv and argv[0] == "help":
        parser.print_help()
        return 0

    # Parse only the first argument to get the command
    parsed, remaining = parser.parse_known_args(argv)

    if not parsed.command:
        parser.print_help()
        return 0

    match parsed.command:
        case "build":
            from .commands.build import run

            return run(remaining)

        case "env":
            from .commands.env import run

            return run(remaining)

        case "duplicates":
            from .commands.duplicates import run

            return run(remaining)

        case _:
            print_error(red("Error: invalid command"))
            parser.print_help(sys.stderr)
            return 1


if __name__ == "__main__":
    sys.exit(main())
