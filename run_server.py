#!/usr/bin/env python3
"""
Entry point for the flight admin API server
"""

import sys
from pathlib import Path

# Add src to Python path so the server runs from a checkout
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from flight_admin.main import main

if __name__ == "__main__":
    main()
