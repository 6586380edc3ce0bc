"""Allow ``python -m devbox_docker``."""

import sys

from .cli import main

sys.exit(main())
