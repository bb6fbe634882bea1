#!/usr/bin/env python3
"""
Convenience wrapper to run meshvis.

Usage: python3 run.py [--server] [--interface bat0] [--format dot]

Or use the module directly:
    python3 -m meshvis --format jsondoc
"""

import sys

from meshvis.__main__ import main

if __name__ == "__main__":
    sys.exit(main())
