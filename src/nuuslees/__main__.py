"""Allow running as ``python -m nuuslees``."""

import sys

from nuuslees.cli import main

if __name__ == "__main__":
    sys.exit(main())
