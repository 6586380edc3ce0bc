"""External tool wrappers for devbox-docker.

devbox, nix, skopeo and docker are driven as black boxes through
``subprocess``; this module gives them a common calling convention.
"""

from __future__ import annotations

import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Any

from ..exceptions import ToolError, ToolNotFoundError
from .log import get_logger

INSTALL_HINTS = {
    "devbox": "https://www.jetify.com/docs/devbox/installing_devbox/",
    "nix": "https://nixos.org/download/",
    "skopeo": "https://github.com/containers/skopeo/blob/main/install.md",
    "docker": "https://docs.docker.com/engine/install/",
}


@dataclass
class Tool:
    """A resolved external command."""
    name: str
    path: str

    def command(self, *args: str) -> list[str]:
        """Return the full argument vector for ``args``."""
        return [self.path, *args]

    def run(
        self,
        *args: str,
        capture_output: bool = True,
        check: bool = False,
        text: bool = True,
        **kwargs: Any,
    ) -> subprocess.CompletedProcess[str]:
        """Run the tool.

        Args:
            *args: Arguments passed to the tool
            capture_output: Capture stdout/stderr
            check: Raise CalledProcessError on non-zero exit
            text: Return text instead of bytes
            **kwargs: Additional arguments for subprocess.run

        Returns:
            CompletedProcess with the result
        """
        cmd = self.command(*args)
        get_logger().debug("Running: %s", shlex.join(cmd))
        return subprocess.run(
            cmd,
            capture_output=capture_output,
            check=check,
            text=text,
            **kwargs,
        )

    def check_call(self, *args: str, **kwargs: Any) -> None:
        """Run the tool with inherited stdio, raising ToolError on failure."""
        result = self.run(*args, capture_output=False, **kwargs)
        if result.returncode != 0:
            raise ToolError(self.name, result.returncode)


def find_tool(name: str) -> Tool:
    """Resolve ``name`` on PATH.

    Raises:
        ToolNotFoundError: If the binary cannot be found
    """
    path = shutil.which(name)
    if not path:
        message = f"Missing dependency: {name} is not installed or not on PATH."
        hint = INSTALL_HINTS.get(name)
        if hint:
            message += f"\nInstallation instructions: {hint}"
        raise ToolNotFoundError(message)
    return Tool(name=name, path=path)
