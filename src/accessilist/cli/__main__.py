"""Main entry point for the AccessiList CLI when run as a module."""

import sys

from accessilist.cli import main

if __name__ == "__main__":
    sys.exit(main())
