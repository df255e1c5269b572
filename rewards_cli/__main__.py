"""
Module execution entry point.

Allows running with: python -m rewards_cli
"""

import sys
from rewards_cli.main import main

if __name__ == "__main__":
    sys.exit(main())
