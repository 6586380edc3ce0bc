"""devbox-docker build command implementation.

Builds a layered container image from a devbox project and loads it into
the local Docker daemon.
"""

from __future__ import annotations

import argparse
import shlex
import sys
from dataclasses import dataclass
from pathlib import Path

from ..config import HANDOFF_FILENAME, VERSION, Config
from ..exceptions import UsageError
from ..utils.console import green, print_error, print_step
from ..utils.log import get_logger, setup_logging
from ..utils.manifest import load_manifest
from ..utils.reconciler import reconcile_environment, write_handoff
from ..utils.templates import generate_flake, get_build_dir, prepare_build_dir
from ..utils.tools import Tool, find_tool

NIX_FEATURES = "nix-command flakes fetch-closure"
CACHE_KEY_NAME = "cache-priv.key"


@dataclass
class BuildStep:
    """One external command of the build."""
    description: str
    tool: str
    args: list[str]

    def display(self) -> str:
        """Shell-quoted command line."""
        return shlex.join([self.tool, *self.args])


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for devbox-docker build."""
    epilog = """\
Examples:
    devbox-docker build
    devbox-docker build --name myapp --tag v1.0
    devbox-docker build --name myapp --push --registry ghcr.io/myuser
    devbox-docker build --github-actions --binary-cache /root/.cache/nix/binary-cache

Variables exported by the project's shell.init_hook are baked into the
image environment; directories the hook prepends to PATH are added to the
image PATH.
"""

    parser = argparse.ArgumentParser(
        prog="devbox-docker build",
        description="Build a layered Docker image from a devbox project",
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-p", "--project",
        default=".",
        help="devbox project directory (default: current directory)",
    )
    parser.add_argument(
        "-n", "--name",
        help="name for the output image (default: devbox-app)",
    )
    parser.add_argument(
        "-t", "--tag",
        help="tag for the output image (default: latest)",
    )
    parser.add_argument(
        "--registry",
        help="registry to push to (e.g., ghcr.io/user)",
    )
    parser.add_argument(
        "--push",
        action="store_true",
        help="push to the registry after building",
    )
    parser.add_argument(
        "--github-actions",
        action="store_true",
        help="include glibc, libstdc++, tar and gzip for GitHub Actions jobs",
    )
    parser.add_argument(
        "--system",
        help="nix system to build for (default: x86_64-linux)",
    )
    parser.add_argument(
        "--binary-cache",
        help="copy build outputs to this local nix binary cache",
    )
    parser.add_argument(
        "-d", "--dry-run",
        action="store_true",
        help="only print the flake and the commands that would run",
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


def apply_args(config: Config, parsed: argparse.Namespace) -> None:
    """Apply CLI overrides to the loaded configuration."""
    if parsed.name:
        config.image_name = parsed.name
    if parsed.tag:
        config.image_tag = parsed.tag
    if parsed.registry:
        config.registry = parsed.registry
    if parsed.github_actions:
        config.github_actions = True
    if parsed.system:
        config.nix_system = parsed.system
    if parsed.binary_cache:
        config.binary_cache_dir = parsed.binary_cache
    if parsed.verbose:
        config.verbose = True


def image_reference(name: str, tag: str, registry: str | None = None) -> str:
    """Return the full image reference, e.g. ghcr.io/user/app:latest."""
    if registry:
        return f"{registry.rstrip('/')}/{name}:{tag}"
    return f"{name}:{tag}"


def image_attribute(config: Config) -> str:
    """Flake attribute path of the image to build."""
    package = "ghaCompatImage" if config.github_actions else "dockerImage"
    return f"packages.{config.nix_system}.{package}"


def binary_cache_url(cache_dir: str) -> str:
    """Return the nix store URL for a local binary cache.

    A ``cache-priv.key`` next to the cache directory is used for signing.
    """
    url = f"file://{cache_dir}"
    key = Path(cache_dir).parent / CACHE_KEY_NAME
    if key.is_file():
        url += f"?secret-key={key}"
    return url


def install_step(project_dir: Path) -> BuildStep:
    """The devbox install step."""
    return BuildStep(
        "Installing devbox packages...",
        "devbox",
        ["install", "--config", str(project_dir)],
    )


def image_steps(
    config: Config,
    build_dir: Path,
    reference: str,
    push: bool = False,
) -> list[BuildStep]:
    """Steps that build, cache, load and push the image."""
    flake = f"path:{build_dir}"
    result = build_dir / "result"

    nix_args = [
        "build",
        f"{flake}#{image_attribute(config)}",
        "--extra-experimental-features",
        NIX_FEATURES,
        "--out-link",
        str(result),
    ]
    if config.verbose:
        nix_args.append("--print-build-logs")

    steps = [BuildStep("Building Docker image with Nix...", "nix", nix_args)]

    if config.binary_cache_dir:
        steps.append(
            BuildStep(
                f"Copying build outputs to {config.binary_cache_dir}...",
                "nix",
                [
                    "copy",
                    "--extra-experimental-features",
                    NIX_FEATURES,
                    "--to",
                    binary_cache_url(config.binary_cache_dir),
                    f"{flake}#packages.{config.nix_system}.cache",
                    str(result),
                ],
            )
        )

    steps.append(
        BuildStep(
            f"Loading image as {reference}...",
            "skopeo",
            [
                "copy",
                "--insecure-policy",
                f"docker-archive:{result}",
                f"docker-daemon:{reference}",
            ],
        )
    )

    if push:
        steps.append(
            BuildStep(
                "Pushing to registry...",
                "skopeo",
                [
                    "copy",
                    "--insecure-policy",
                    f"docker-daemon:{reference}",
                    f"docker://{reference}",
                ],
            )
        )

    return steps


def run_step(step: BuildStep, tools: dict[str, Tool], cwd: Path) -> None:
    """Run a build step, resolving its tool on first use."""
    print_step(step.description)
    if step.tool not in tools:
        tools[step.tool] = find_tool(step.tool)
    tools[step.tool].check_call(*step.args, cwd=str(cwd))


def _print_dry_run(project_dir: Path, config: Config, reference: str, push: bool) -> None:
    """Print the rendered flake and the planned commands."""
    build_dir = get_build_dir(project_dir)
    print("# Generated flake.nix:")
    print(generate_flake(project_dir, config.image_name, config.image_tag))
    print("# Commands:")
    print(install_step(project_dir).display())
    print(f"# reconcile init_hook environment -> {build_dir / HANDOFF_FILENAME}")
    for step in image_steps(config, build_dir, reference, push):
        print(step.display())


def run(args: list[str] | None = None) -> int:
    """Run the build command.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    config = Config.load()
    apply_args(config, parsed)

    if parsed.push and not config.registry:
        raise UsageError("--push requires --registry")

    setup_logging(config.verbose)
    logger = get_logger()

    project_dir = Path(parsed.project).resolve()
    # Fail early on a missing or broken manifest
    load_manifest(project_dir)

    reference = image_reference(config.image_name, config.image_tag, config.registry)

    if parsed.dry_run:
        _print_dry_run(project_dir, config, reference, parsed.push)
        return 0

    tools: dict[str, Tool] = {}
    run_step(install_step(project_dir), tools, project_dir)

    print_step("Reconciling init_hook environment...")
    entries = reconcile_environment(project_dir, config, tools["devbox"])
    for entry in entries:
        logger.info("image env: %s", entry)

    build_dir = prepare_build_dir(project_dir, config.image_name, config.image_tag)
    write_handoff(entries, build_dir / HANDOFF_FILENAME)
    if config.handoff_path:
        write_handoff(entries, Path(config.handoff_path))

    for step in image_steps(config, build_dir, reference, parsed.push):
        run_step(step, tools, project_dir)

    print_error(green(f"Successfully built: {reference}"))
    if parsed.push:
        print_error(green(f"Successfully pushed: {reference}"))
    return 0


if __name__ == "__main__":
    sys.exit(run())
