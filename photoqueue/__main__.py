"""
Main entry point for running the package as a module.

Usage:
    python -m photoqueue validate photos/
    python -m photoqueue upload photos/ --local-root /mnt/event
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
