"""Run corral from a source checkout."""

import sys

from corral.__main__ import main

if __name__ == "__main__":
    sys.exit(main())
