"""Allow ``python -m sequinkit``."""

import sys

from sequinkit.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
