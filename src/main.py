"""
Alerts Tracker - sync, push and digest for an external alerts sheet.
"""

import sys

from alerttracker.interface.cli import main


if __name__ == "__main__":
    sys.exit(main())
