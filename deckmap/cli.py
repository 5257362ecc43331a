#!/usr/bin/env python3
"""
Command-line translation of single MIDI messages.

Usage:
    python -m deckmap <mapping.xml> <status> <data1> [data2] ... [--script FILE]

Bytes are decimal or 0x-prefixed hex. Prints one JSON action per line.
"""

import argparse
import json
import os
import sys
from typing import List, Optional

from deckmap.dispatcher import load_dispatcher
from deckmap.errors import DeckmapError
from deckmap.log import get_logger, set_log_level, set_log_stream
from deckmap.midi import ProtocolMessage

logger = get_logger(__name__)


def parse_byte(arg: str) -> int:
    """Parse a byte given in decimal or 0x hex.

    Examples:
        >>> parse_byte("0x90")
        144
        >>> parse_byte("60")
        60
    """
    try:
        value = int(arg, 16) if arg.lower().startswith("0x") else int(arg, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a byte: {arg!r}")
    if not 0 <= value <= 0xFF:
        raise argparse.ArgumentTypeError(f"byte out of range (0-255): {arg!r}")
    return value


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for translating one message."""
    parser = argparse.ArgumentParser(
        prog="python -m deckmap",
        description="Translate one MIDI message through a controller mapping",
        epilog="Example: python -m deckmap MC7000.midi.xml 0x90 0x3C 0x7F",
    )
    parser.add_argument("mapping", help="Mapping XML file")
    parser.add_argument("status", type=parse_byte, help="Status byte")
    parser.add_argument("data", type=parse_byte, nargs="+", help="Data bytes")
    parser.add_argument("--script", help="Mapping script (default: the mapping's <scriptfiles>)")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=os.getenv("DECKMAP_LOG_LEVEL", "WARNING"),
    )

    args = parser.parse_args(argv)
    set_log_level(args.log_level)
    # stdout carries only JSON actions
    set_log_stream(sys.stderr)

    try:
        dispatcher = load_dispatcher(args.mapping, args.script)
        actions = dispatcher.handle_incoming(ProtocolMessage(args.status, tuple(args.data)))
    except (FileNotFoundError, DeckmapError) as e:
        logger.error(f"{e}")
        return 1

    for action in actions:
        print(json.dumps(action.to_dict()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
