"""Entry point for ``python -m voxarena``."""

import sys

from voxarena.cli import main

sys.exit(main())
