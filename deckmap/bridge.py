#!/usr/bin/env python3
"""
Deckmap MIDI Bridge - live controller input -> host actions.

Opens one named MIDI input port, runs every message through a Dispatcher
and emits the resulting actions as JSON lines (stdout) or log lines.

Architecture:
    MIDI Input (mido) → ProtocolMessage → Dispatcher → Action sink

Configuration (YAML, default deckmap/config/bridge.yaml):
    midi:
      input: "Controller MIDI 1"
    mapping:
      file: mappings/generic-2deck.midi.xml
      script: null
    output:
      format: json

Relative mapping/script paths resolve against the config file's directory.
The input port is opened by exact name; no port discovery is done.

Usage:
    python3 -m deckmap.bridge
    python3 -m deckmap.bridge --config my-bridge.yaml
    python3 -m deckmap.bridge --mapping MC7000.midi.xml --input "MC7000 MIDI 1"
"""

import argparse
import json
import os
import sys
import time
from pathlib import Path
from typing import Callable, List, Optional

import mido
import yaml

from deckmap.action import Action
from deckmap.dispatcher import Dispatcher, load_dispatcher
from deckmap.errors import DeckmapError
from deckmap.log import get_logger, set_log_level, set_log_stream
from deckmap.midi import MIN_DATA_BYTES, ProtocolMessage

logger = get_logger(__name__)


DEFAULT_CONFIG = Path(__file__).parent / "config" / "bridge.yaml"

OUTPUT_FORMATS = ("json", "log")

# Poll interval for the non-blocking input loop (seconds)
POLL_INTERVAL = 0.005


# ============================================================================
# CONFIG LOADING
# ============================================================================

def load_config(config_path) -> dict:
    """Load and validate bridge YAML configuration.

    Args:
        config_path: Path to bridge.yaml

    Returns:
        Parsed configuration dict with mapping/script paths made absolute

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config validation fails
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, 'r') as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"Config must be a mapping, got {type(config).__name__}")

    midi = config.setdefault('midi', {}) or {}
    if not isinstance(midi, dict):
        raise ValueError("Config 'midi' section must be a mapping")
    config['midi'] = midi
    port_name = midi.get('input')
    if port_name is not None and not isinstance(port_name, str):
        raise ValueError(f"midi.input must be a string, got {type(port_name).__name__}")

    mapping = config.get('mapping')
    if not isinstance(mapping, dict):
        raise ValueError("Config missing 'mapping' section")
    if not mapping.get('file'):
        raise ValueError("Config missing 'mapping.file'")

    base_dir = path.parent
    mapping['file'] = str(base_dir / mapping['file'])
    if mapping.get('script'):
        mapping['script'] = str(base_dir / mapping['script'])
    else:
        mapping['script'] = None

    output = config.setdefault('output', {}) or {}
    if not isinstance(output, dict):
        raise ValueError("Config 'output' section must be a mapping")
    config['output'] = output
    output_format = output.setdefault('format', 'json')
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(f"output.format must be one of {OUTPUT_FORMATS}, got {output_format!r}")

    logger.info(f"Loaded config from {config_path}")
    logger.info(f"  Mapping: {mapping['file']}")
    if mapping['script']:
        logger.info(f"  Script: {mapping['script']}")
    logger.info(f"  MIDI input: {port_name or '(not set)'}")

    return config


# ============================================================================
# ACTION SINKS
# ============================================================================

def json_sink(action: Action) -> None:
    print(json.dumps(action.to_dict()), flush=True)


def log_sink(action: Action) -> None:
    logger.info(json.dumps(action.to_dict()))


SINKS = {
    "json": json_sink,
    "log": log_sink,
}


# ============================================================================
# MIDI BRIDGE
# ============================================================================

class MidiBridge:
    """Feeds one MIDI input port through a Dispatcher.

    Attributes:
        dispatcher (Dispatcher): Mapping session for this input
        sink (callable): Receives each emitted action
        running (bool): Cleared by stop() to end run()
    """

    def __init__(self, dispatcher: Dispatcher, sink: Callable[[Action], None] = json_sink):
        self.dispatcher = dispatcher
        self.sink = sink
        self.running = False

    def process_message(self, msg: mido.Message) -> List[Action]:
        """Dispatch one mido message and hand the actions to the sink.

        Messages too short to carry an identifier and value (program
        change, clock, ...) are skipped.
        """
        if msg.is_meta:
            return []
        message = ProtocolMessage.from_mido(msg)
        if len(message.data) < MIN_DATA_BYTES:
            logger.debug(f"Skipping short message: {msg}")
            self.dispatcher.stats.increment('skipped')
            return []

        actions = self.dispatcher.handle_incoming(message)
        for action in actions:
            self.sink(action)
        return actions

    def run(self, midi_input) -> None:
        """Process messages until stop() is called or input is interrupted.

        Uses non-blocking iteration so stop() takes effect promptly.
        With the JSON sink, logging moves to stderr for the whole run.
        """
        if self.sink is json_sink:
            set_log_stream(sys.stderr)
        self.running = True
        for action in self.dispatcher.initialize():
            self.sink(action)
        logger.info(f"Listening on {getattr(midi_input, 'name', midi_input)}")

        try:
            while self.running:
                for msg in midi_input.iter_pending():
                    if not self.running:
                        break
                    self.process_message(msg)
                time.sleep(POLL_INTERVAL)
        finally:
            for action in self.dispatcher.shutdown():
                self.sink(action)
            self.dispatcher.stats.log_stats(logger, "BRIDGE STATISTICS")

    def stop(self) -> None:
        self.running = False


# ============================================================================
# MAIN
# ============================================================================

def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point with command-line argument parsing.

    Command-line arguments:
        --config PATH     Path to bridge.yaml (default: deckmap/config/bridge.yaml)
        --mapping PATH    Mapping XML, overrides mapping.file
        --script PATH     Mapping script, overrides mapping.script
        --input NAME      MIDI input port name, overrides midi.input
        --format FORMAT   json | log, overrides output.format
        --log-level LEVEL Logging verbosity
    """
    parser = argparse.ArgumentParser(
        description="Deckmap MIDI bridge - controller messages to host actions"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=str(DEFAULT_CONFIG),
        help="Path to bridge.yaml config (default: deckmap/config/bridge.yaml)",
    )
    parser.add_argument("--mapping", type=str, help="Mapping XML file")
    parser.add_argument("--script", type=str, help="Mapping script file")
    parser.add_argument("--input", type=str, help="MIDI input port name")
    parser.add_argument("--format", choices=OUTPUT_FORMATS, help="Action output format")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=os.getenv("DECKMAP_LOG_LEVEL", "INFO"),
        help="Logging verbosity (default: INFO)",
    )

    args = parser.parse_args(argv)

    set_log_level(args.log_level)
    # stdout is reserved for JSON actions unless the log format is chosen
    set_log_stream(sys.stderr)

    try:
        config = load_config(args.config)
        mapping_path = args.mapping or config['mapping']['file']
        script_path = args.script or config['mapping']['script']
        port_name = args.input or config['midi'].get('input')
        output_format = args.format or config['output']['format']

        if not port_name:
            raise ValueError("No MIDI input port configured (midi.input or --input)")

        dispatcher = load_dispatcher(mapping_path, script_path)
    except (FileNotFoundError, ValueError, DeckmapError) as e:
        logger.error(f"{e}")
        sys.exit(1)

    if output_format == "log":
        set_log_stream(sys.stdout)
    bridge = MidiBridge(dispatcher, sink=SINKS[output_format])

    try:
        with mido.open_input(port_name) as midi_input:
            bridge.run(midi_input)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        bridge.stop()
    except (OSError, IOError) as e:
        logger.error(f"Cannot open MIDI input '{port_name}': {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
