"""Test helpers for devbox-docker."""

from __future__ import annotations

import json
import shlex
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, Any

from devbox_docker.utils.reconciler import ENV_MARKER

if TYPE_CHECKING:
    from collections.abc import Mapping


def write_manifest(project_dir: Path, data: dict[str, Any] | str) -> Path:
    """Write devbox.json; strings are written verbatim."""
    path = project_dir / "devbox.json"
    content = data if isinstance(data, str) else json.dumps(data, indent=2) + "\n"
    path.write_text(content)
    return path


def dump_env(env: Mapping[str, str]) -> str:
    """Render a mapping the way ``env -0`` prints it."""
    return "".join(f"{name}={value}\0" for name, value in env.items())


class FakeDevbox:
    """Stand-in for the devbox Tool used by the reconciler.

    ``run`` records the manifest as devbox would see it, writes the before
    snapshot to the path named by the hook prelude, and returns the after
    snapshot on stdout behind the marker.
    ``raw_before`` and ``raw_after`` supply dumps as bytes.
    """

    def __init__(
        self,
        project_dir: Path,
        before: Mapping[str, str] | None = None,
        after: Mapping[str, str] | None = None,
        *,
        returncode: int = 0,
        write_before: bool = True,
        timeout: bool = False,
        chatter: str = "",
        raw_before: bytes | None = None,
        raw_after: bytes | None = None,
    ) -> None:
        self.name = "devbox"
        self.project_dir = project_dir
        self.before = dict(before or {})
        self.after = dict(after or {})
        self.returncode = returncode
        self.write_before = write_before
        self.timeout = timeout
        self.chatter = chatter
        self.raw_before = raw_before
        self.raw_after = raw_after
        self.calls: list[tuple[tuple[str, ...], dict[str, Any]]] = []
        self.seen_manifests: list[dict[str, Any]] = []

    def before_path(self, manifest: dict[str, Any]) -> Path:
        """Extract the snapshot path from the first hook command."""
        hook = manifest["shell"]["init_hook"]
        first = hook[0] if isinstance(hook, list) else hook.splitlines()[0]
        return Path(shlex.split(first)[-1])

    def run(self, *args: str, **kwargs: Any) -> subprocess.CompletedProcess[str]:
        self.calls.append((args, kwargs))
        manifest = json.loads((self.project_dir / "devbox.json").read_text())
        self.seen_manifests.append(manifest)

        if self.timeout:
            raise subprocess.TimeoutExpired(["devbox", *args], kwargs.get("timeout"))

        if self.write_before:
            path = self.before_path(manifest)
            if self.raw_before is not None:
                path.write_bytes(self.raw_before)
            else:
                path.write_text(dump_env(self.before))

        if self.returncode != 0:
            return subprocess.CompletedProcess(["devbox", *args], self.returncode, "", "hook failed")

        stdout = f"{self.chatter}{ENV_MARKER}\0"
        if self.raw_after is not None:
            # Decode like subprocess.run would with the caller's error handler
            stdout += self.raw_after.decode(errors=kwargs.get("errors") or "strict")
        else:
            stdout += dump_env(self.after)
        return subprocess.CompletedProcess(["devbox", *args], 0, stdout, "")
