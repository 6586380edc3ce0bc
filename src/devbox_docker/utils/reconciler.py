"""Environment reconciliation for devbox init hooks.

The image produced by nix has no interactive shell setup, so whatever the
project's ``shell.init_hook`` exports would be lost. The reconciler runs the
hook in an isolated ``devbox run --pure`` invocation, snapshots the
environment at the start of the hook and again after it, and keeps only the
difference.

Flow:
    devbox.json hook:   [cmd1, cmd2]
              ↓
    temporary hook:     [env -0 > <tmp>/env-before, cmd1, cmd2]
              ↓
    devbox run --pure -- sh -c 'printf MARKER; env -0'
              ↓
    before (file) / after (stdout) → diff → denylist → PATH_ADDITIONS
"""

from __future__ import annotations

import json
import os
import shlex
import subprocess
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from ..exceptions import ConfigError
from .envdiff import EnvironmentSnapshot, compile_denylist, reconcile_snapshots
from .log import get_logger
from .manifest import ManifestGuard, ManifestHook, load_manifest, manifest_path
from .tools import Tool, find_tool

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..config import Config

BEFORE_FILENAME = "env-before"

# Separates hook chatter on stdout from the after snapshot
ENV_MARKER = "__DEVBOX_DOCKER_ENV__"
AFTER_SCRIPT = f"printf '%s\\0' {ENV_MARKER}; env -0"

# Environment values are arbitrary bytes; keep undecodable ones round-trippable
SNAPSHOT_ERRORS = "surrogateescape"


def capture_command(path: Path) -> str:
    """Shell command that writes the current environment to ``path``."""
    return f"env -0 > {shlex.quote(str(path))}"


def isolated_env(passthrough: Iterable[str]) -> dict[str, str]:
    """Return the minimal environment handed to the hook invocation."""
    return {name: os.environ[name] for name in passthrough if name in os.environ}


def extract_after(stdout: str) -> str:
    """Return the environment dump that follows the marker, or ''."""
    marker = f"{ENV_MARKER}\0"
    index = stdout.rfind(marker)
    if index == -1:
        return ""
    return stdout[index + len(marker):]


def read_before(path: Path) -> EnvironmentSnapshot:
    """Load the before snapshot, falling back to this process's environment.

    The file is missing when the hook exits before its first command ran.
    """
    try:
        return EnvironmentSnapshot.parse(path.read_text(errors=SNAPSHOT_ERRORS))
    except FileNotFoundError:
        get_logger().debug("No before snapshot at %s, using own environment", path)
        return EnvironmentSnapshot.from_mapping(os.environ)


def run_hook(devbox: Tool, project_dir: Path, config: Config) -> str:
    """Run the project's hook in a pure devbox shell.

    Returns:
        The after snapshot text, or '' when the hook failed or timed out
    """
    logger = get_logger()
    timeout = config.hook_timeout if config.hook_timeout > 0 else None

    try:
        result = devbox.run(
            "run",
            "--pure",
            "--config",
            str(project_dir),
            "--",
            "sh",
            "-c",
            AFTER_SCRIPT,
            env=isolated_env(config.env_passthrough),
            cwd=str(project_dir),
            timeout=timeout,
            errors=SNAPSHOT_ERRORS,
        )
    except subprocess.TimeoutExpired:
        logger.warning(
            "init_hook did not finish within %ss; building without hook environment",
            config.hook_timeout,
        )
        return ""

    if result.returncode != 0:
        logger.warning(
            "init_hook failed with exit code %d; building without hook environment",
            result.returncode,
        )
        if result.stderr:
            logger.debug("devbox stderr:\n%s", result.stderr.rstrip())
        return ""

    after = extract_after(result.stdout)
    if not after:
        logger.warning("devbox run produced no environment dump")
    return after


def reconcile_environment(
    project_dir: Path,
    config: Config,
    devbox: Tool | None = None,
) -> list[str]:
    """Compute the environment variables added by the project's init hook.

    Args:
        project_dir: Directory containing devbox.json
        config: Loaded configuration (denylist, passthrough, timeout)
        devbox: devbox tool to use, resolved from PATH if None

    Returns:
        ``NAME=value`` strings; empty when there is no hook or it failed

    Raises:
        ManifestError: If devbox.json is missing or malformed
        ToolNotFoundError: If devbox is not installed
        ConfigError: If a denylist pattern is not a valid regex
    """
    logger = get_logger()
    project_dir = Path(project_dir)

    try:
        compile_denylist(config.env_denylist)
    except ValueError as e:
        raise ConfigError(str(e)) from None

    manifest = load_manifest(project_dir)
    hook = ManifestHook.from_manifest(manifest)
    if hook is None:
        logger.debug("No init_hook in %s", manifest_path(project_dir))
        return []

    if devbox is None:
        devbox = find_tool("devbox")

    with tempfile.TemporaryDirectory(prefix="devbox-docker-") as tmpdir:
        before_path = Path(tmpdir) / BEFORE_FILENAME
        modified = hook.with_prelude(capture_command(before_path))

        with ManifestGuard(manifest_path(project_dir)) as guard:
            guard.write(modified.apply_to(manifest))
            logger.debug("Temporary init_hook:\n%s", modified.script())
            after_text = run_hook(devbox, project_dir, config)

        if not after_text:
            return []

        before = read_before(before_path)

    after = EnvironmentSnapshot.parse(after_text)
    entries = reconcile_snapshots(before, after, config.env_denylist)
    logger.debug("Reconciled %d variable(s) from init_hook", len(entries))
    return entries


def write_handoff(entries: list[str], path: Path) -> Path:
    """Write the reconciled variables as a JSON array of strings."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(entries, indent=2) + "\n")
    return path
