#!/usr/bin/env python3
"""
Text-game compiler entry point.

Usage: python txgc.py input.txg [-o output.json] [--verbose] [--compact]
"""

from txgc.compiler import main

if __name__ == '__main__':
    main()
