"""Allow ``python -m sitereport``."""

import sys

from sitereport.cli import main

sys.exit(main())
