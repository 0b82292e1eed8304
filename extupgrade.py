#!/usr/bin/env python3
"""
extupgrade - PostgreSQL extension upgrade validator

Entry point script, to run from a source checkout.

Usage:
    ./extupgrade.py --extname myext --from 1.0 --to 1.1
    ./extupgrade.py -c myext.toml
    ./extupgrade.py --help
"""

import sys
from pathlib import Path

# Add the project root to path so the extupgrade package can be imported
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from extupgrade.cli import main

if __name__ == "__main__":
    main()
