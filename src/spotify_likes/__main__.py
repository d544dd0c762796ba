"""Allow ``python -m spotify_likes``."""

import sys

from .cli import main

sys.exit(main())
