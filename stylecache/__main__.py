"""Allow running as `python -m stylecache`."""

import sys

from stylecache.cli import main

sys.exit(main())
