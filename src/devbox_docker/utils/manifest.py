"""devbox.json handling.

Reads the project manifest, exposes its init hook, and provides a guard
that mutates the manifest temporarily and always puts the original bytes
back.
"""

from __future__ import annotations

import json
import signal
from dataclasses import dataclass
from pathlib import Path
from types import FrameType, TracebackType
from typing import Any

from ..exceptions import ManifestError
from .log import get_logger

MANIFEST_NAME = "devbox.json"

# Signals that would otherwise terminate the process with the manifest mutated
GUARDED_SIGNALS = tuple(
    getattr(signal, name)
    for name in ("SIGINT", "SIGTERM", "SIGHUP")
    if hasattr(signal, name)
)


def manifest_path(project_dir: Path) -> Path:
    """Return the path of the devbox manifest inside a project directory."""
    return Path(project_dir) / MANIFEST_NAME


def load_manifest(project_dir: Path) -> dict[str, Any]:
    """Load and parse the project's devbox.json.

    Raises:
        ManifestError: If the file is missing or is not a JSON object
    """
    path = manifest_path(project_dir)
    try:
        content = path.read_text()
    except FileNotFoundError:
        raise ManifestError(f"No {MANIFEST_NAME} found in {project_dir}") from None
    except OSError as e:
        raise ManifestError(f"Cannot read {path}: {e}") from None

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid JSON in {path}: {e}") from None

    if not isinstance(data, dict):
        raise ManifestError(f"{path} must contain a JSON object")
    return data


@dataclass(frozen=True)
class ManifestHook:
    """The ``shell.init_hook`` of a devbox manifest.

    devbox accepts either a single command string or a list of command
    lines; ``commands`` keeps the original shape in ``is_list``.
    """
    commands: tuple[str, ...]
    is_list: bool

    @classmethod
    def from_manifest(cls, data: dict[str, Any]) -> ManifestHook | None:
        """Extract the init hook, or None if the manifest declares none."""
        shell = data.get("shell")
        if not isinstance(shell, dict):
            return None

        hook = shell.get("init_hook")
        if isinstance(hook, str):
            return cls((hook,), is_list=False) if hook.strip() else None
        if isinstance(hook, list):
            if not all(isinstance(line, str) for line in hook):
                raise ManifestError("shell.init_hook must contain only strings")
            if not any(line.strip() for line in hook):
                return None
            return cls(tuple(hook), is_list=True)
        if hook is None:
            return None
        raise ManifestError("shell.init_hook must be a string or a list of strings")

    def with_prelude(self, command: str) -> ManifestHook:
        """Return a new hook that runs ``command`` before the original commands."""
        if self.is_list:
            return ManifestHook((command, *self.commands), is_list=True)
        return ManifestHook((f"{command}\n{self.commands[0]}",), is_list=False)

    def script(self) -> str:
        """Render the hook as a single shell script."""
        return "\n".join(self.commands)

    def to_json(self) -> str | list[str]:
        """Return the value to store under ``shell.init_hook``."""
        if self.is_list:
            return list(self.commands)
        return self.commands[0]

    def apply_to(self, data: dict[str, Any]) -> dict[str, Any]:
        """Return a copy of ``data`` with this hook installed."""
        updated = dict(data)
        shell = dict(updated.get("shell") or {})
        shell["init_hook"] = self.to_json()
        updated["shell"] = shell
        return updated


class ManifestGuard:
    """Context manager for temporary manifest mutations.

    The original bytes are written back when the block exits, whether it
    returns, raises, or is interrupted by SIGINT/SIGTERM/SIGHUP.

    Usage:
        with ManifestGuard(path) as guard:
            guard.write(modified)
            subprocess.run(["devbox", "run", ...])
    """

    def __init__(self, path: Path) -> None:
        """Initialize the guard for ``path``."""
        self.path = Path(path)
        self._original: bytes | None = None
        self._previous_handlers: dict[int, Any] = {}

    def __enter__(self) -> ManifestGuard:
        """Record the original manifest and install signal handlers."""
        self._original = self.path.read_bytes()
        for signum in GUARDED_SIGNALS:
            try:
                self._previous_handlers[signum] = signal.signal(signum, self._on_signal)
            except ValueError:
                # Not the main thread; rely on __exit__ alone
                break
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Restore the manifest and previous signal handlers."""
        try:
            self.restore()
        finally:
            for signum, handler in self._previous_handlers.items():
                signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
            self._previous_handlers.clear()

    @property
    def original(self) -> bytes:
        """The manifest bytes captured on enter."""
        if self._original is None:
            raise RuntimeError("ManifestGuard not entered as context manager")
        return self._original

    def write(self, data: dict[str, Any]) -> None:
        """Replace the manifest with ``data`` serialized as JSON."""
        self.path.write_text(json.dumps(data, indent=2) + "\n")

    def restore(self) -> None:
        """Write the original bytes back if the file differs from them."""
        if self._original is None:
            return
        try:
            current = self.path.read_bytes()
        except FileNotFoundError:
            current = None
        if current != self._original:
            get_logger().debug("Restoring %s", self.path)
            self.path.write_bytes(self._original)

    def _on_signal(self, signum: int, frame: FrameType | None) -> None:
        """Restore immediately, then leave the guarded block."""
        self.restore()
        if signum == getattr(signal, "SIGINT", None):
            raise KeyboardInterrupt
        raise SystemExit(128 + signum)
