"""devbox-docker: layered container images from devbox projects.

Wraps devbox, nix and skopeo: installs the project's packages, bakes the
environment exported by its init hook into the image, builds a layered
image with ``dockerTools.buildLayeredImage`` and loads it into Docker.
"""

from .cli import main
from .config import VERSION

__version__ = VERSION

__all__ = ["main", "VERSION"]
