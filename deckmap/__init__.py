"""
Deckmap - DJ controller mapping engine.

Translates control-surface MIDI messages into device-independent actions.

Modules:
    midi: Wire message model
    action: Value/press action vocabulary shared by rules and scripts
    mapping: Immutable binding document parsed from controller-preset XML
    rules: Declarative key -> action translation table
    script: Scoped evaluation of mapping scripts and their capabilities
    dispatcher: Per-mapping message dispatcher
    bridge: Live MIDI input bridge with YAML configuration
"""

__version__ = "0.1.0"
