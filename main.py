#!/usr/bin/env python3
"""
Main entry point for the Sentinel-2 before / on / after exporter.

Equivalent to the installed ``s2triad`` command; see ``python main.py --help``.
"""
import sys

from s2triad.cli import main


if __name__ == "__main__":
    sys.exit(main())
