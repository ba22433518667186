"""
Entry point for the selection2speech package when run as a module.

This allows the package to be executed directly with:
    python -m selection2speech
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
