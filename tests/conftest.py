"""Pytest fixtures shared across deckmap tests.

Provides:
- generic_mapping_path: bundled two-deck example mapping
- bridge_config_path: bundled bridge configuration
"""

from pathlib import Path

import pytest

CONFIG_DIR = Path(__file__).parent.parent / "deckmap" / "config"


@pytest.fixture
def generic_mapping_path():
    return CONFIG_DIR / "mappings" / "generic-2deck.midi.xml"


@pytest.fixture
def bridge_config_path():
    return CONFIG_DIR / "bridge.yaml"


@pytest.fixture(autouse=True)
def restore_log_stream():
    """Put deckmap log handlers back on their original streams after each test.

    Entry points move logging to stderr; pytest swaps stderr per test.
    """
    from deckmap import log

    saved_default = log._log_stream
    saved = [(handler, handler.stream) for handler in log._handlers]
    yield
    log._log_stream = saved_default
    for handler, stream in saved:
        handler.stream = stream
