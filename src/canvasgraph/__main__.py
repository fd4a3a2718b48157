"""Allow running as ``python -m canvasgraph``."""

import sys

from canvasgraph.cli import main

sys.exit(main())
