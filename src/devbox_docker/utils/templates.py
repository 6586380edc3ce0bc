"""Flake rendering for image builds.

The bundled flake.nix has ``@name@`` placeholders (the substituteAll
convention, since ``$`` is taken by Nix interpolation). Rendered flakes live
in a per-project directory under the user cache so nix can evaluate them as
``path:`` flakes next to the hand-off file.
"""

from __future__ import annotations

import hashlib
import re
from pathlib import Path

from ..config import HANDOFF_FILENAME, get_cache_dir
from ..resources import FLAKE_TEMPLATE, get_resource_content

_PLACEHOLDER_RE = re.compile(r"@([a-z_]+)@")


def render_template(template: str, values: dict[str, str]) -> str:
    """Replace ``@key@`` placeholders.

    Raises:
        KeyError: If the template references a key missing from ``values``
    """
    def _sub(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in values:
            raise KeyError(f"No value for template placeholder @{key}@")
        return values[key]

    return _PLACEHOLDER_RE.sub(_sub, template)


def generate_flake(project_dir: Path, image_name: str, image_tag: str) -> str:
    """Render flake.nix for a project.

    Args:
        project_dir: Absolute project directory (holds .devbox/gen/flake)
        image_name: Image name baked into the archive
        image_tag: Image tag baked into the archive

    Returns:
        flake.nix content
    """
    return render_template(
        get_resource_content(FLAKE_TEMPLATE),
        {
            "project_dir": str(Path(project_dir).resolve()),
            "image_name": image_name,
            "image_tag": image_tag,
            "handoff_file": HANDOFF_FILENAME,
        },
    )


def get_build_dir(project_dir: Path) -> Path:
    """Get the build directory for a project (not created).

    The directory name combines the project's basename with a short hash of
    its absolute path, so two checkouts never share a build directory.
    """
    resolved = Path(project_dir).resolve()
    digest = hashlib.sha256(str(resolved).encode()).hexdigest()[:12]
    safe_name = re.sub(r"[^a-z0-9._-]", "-", resolved.name.lower()) or "project"
    return get_cache_dir() / "builds" / f"{safe_name}-{digest}"


def get_handoff_path(project_dir: Path) -> Path:
    """Default location of the reconciled environment for a project."""
    return get_build_dir(project_dir) / HANDOFF_FILENAME


def prepare_build_dir(project_dir: Path, image_name: str, image_tag: str) -> Path:
    """Write the rendered flake into the project's build directory.

    Returns:
        The build directory
    """
    build_dir = get_build_dir(project_dir)
    build_dir.mkdir(parents=True, exist_ok=True)
    (build_dir / "flake.nix").write_text(generate_flake(project_dir, image_name, image_tag))
    return build_dir
