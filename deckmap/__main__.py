#!/usr/bin/env python3
"""
Entry point for running deckmap as a module.

Usage:
    python -m deckmap <mapping.xml> <status> <data1> [data2] ...
"""

import sys

from deckmap.cli import main

sys.exit(main())
