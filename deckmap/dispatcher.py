"""
Dispatcher - turns incoming MIDI messages into host actions.

One Dispatcher owns one MappingDocument and the ScriptBridge evaluated for
it. Dispatch is synchronous request/response: each handle_incoming call
runs to completion, including any script handler, before the next one.
Callers feeding one dispatcher from several inputs must serialize calls.

Flow per message:
    1. Record as last_message
    2. Resolve the binding by (status, data[0]); none -> []
    3. Script binding -> invoke the handler, return what it emitted
       Otherwise      -> apply the declarative rule table
"""

from pathlib import Path
from typing import List, Optional, Union

from deckmap import rules
from deckmap.action import Action, OutputIntent
from deckmap.log import get_logger
from deckmap.mapping import MappingDocument, load_mapping
from deckmap.midi import ProtocolMessage
from deckmap.script import ScriptBridge
from deckmap.stats import MessageStatistics

logger = get_logger(__name__)


class Dispatcher:
    """Stateful per-mapping dispatcher.

    Attributes:
        document (MappingDocument): Bindings and metadata
        bridge (ScriptBridge): Evaluated mapping script (empty if none)
        last_message (ProtocolMessage): Most recent message seen; kept for
            correlating multi-part messages, not read by dispatch itself
        stats (MessageStatistics): Dispatch counters
    """

    def __init__(self, document: MappingDocument, bridge: Optional[ScriptBridge] = None):
        self.document = document
        self.bridge = bridge if bridge is not None else ScriptBridge()
        self.last_message: Optional[ProtocolMessage] = None
        self.stats = MessageStatistics()

    @classmethod
    def from_sources(cls, xml_source: str, script_source: Optional[str] = None) -> "Dispatcher":
        """Parse mapping XML and evaluate its script.

        Raises:
            ParseError: Invalid mapping document
            ScriptEvaluationError: Script failed during evaluation
        """
        document = MappingDocument.parse(xml_source)
        return cls(document, ScriptBridge(script_source))

    def handle_incoming(self, message: ProtocolMessage) -> List[Action]:
        """Translate one incoming message into actions.

        Returns:
            Actions in emission order; empty when no binding matches

        Raises:
            InvalidMessageError: If the message has fewer than 2 data bytes
        """
        message.require_data()
        self.last_message = message
        self.stats.increment('messages')

        binding = self.document.find_control(message.status, message.identifier)
        if binding is None:
            self.stats.increment('unmapped')
            logger.debug(f"No binding for {message}")
            return []

        raw_value = message.value

        if binding.is_script_binding:
            actions = self._invoke_script(binding, raw_value, message.status)
        else:
            actions = rules.translate(binding, raw_value)

        self.stats.increment('actions', len(actions))
        logger.debug(f"{message} -> {binding.group} {binding.key} -> {len(actions)} action(s)")
        return actions

    def _invoke_script(self, binding, raw_value: int, status: int) -> List[Action]:
        deck = rules.parse_deck(binding.group)
        self.stats.increment('script_calls')
        try:
            actions = self.bridge.invoke(binding.key, deck, binding, raw_value, status, binding.group)
        except Exception:
            self.stats.increment('script_errors')
            logger.exception(f"Script handler {binding.key} failed for {binding.group}")
            return []

        if actions is None:
            logger.debug(f"No script handler named {binding.key}")
            return []
        return actions

    def prepare_outgoing(self, intent: OutputIntent) -> List[ProtocolMessage]:
        """Translate a host state change into controller feedback messages.

        Outgoing translation is not implemented; always returns [].
        """
        logger.debug(f"Outgoing translation not implemented: {intent.group} {intent.key}")
        return []

    def initialize(self, debugging: bool = False) -> List[Action]:
        """Call <prefix>.init(controller_id, debugging) for each script file."""
        return self._run_lifecycle("init", self.document.controller_id, debugging)

    def shutdown(self) -> List[Action]:
        """Call <prefix>.shutdown() for each script file."""
        return self._run_lifecycle("shutdown")

    def _run_lifecycle(self, hook: str, *args) -> List[Action]:
        actions: List[Action] = []
        for script_file in self.document.script_files:
            if not script_file.function_prefix:
                continue
            key = f"{script_file.function_prefix}.{hook}"
            try:
                emitted = self.bridge.invoke(key, *args)
            except Exception:
                self.stats.increment('script_errors')
                logger.exception(f"Script hook {key} failed")
                continue
            if emitted is not None:
                logger.info(f"Ran {key}")
                actions.extend(emitted)
        return actions


def read_script_sources(document: MappingDocument, base_dir: Path) -> Optional[str]:
    """Concatenate the document's declared script files, in declared order.

    Raises:
        FileNotFoundError: If a declared script file doesn't exist
    """
    if not document.script_files:
        return None

    sources = []
    for script_file in document.script_files:
        path = base_dir / script_file.filename
        if not path.exists():
            raise FileNotFoundError(f"Script file not found: {path}")
        sources.append(path.read_text(encoding="utf-8"))
    return "\n\n".join(sources)


def load_dispatcher(
    mapping_path: Union[str, Path],
    script_path: Optional[Union[str, Path]] = None,
) -> Dispatcher:
    """Build a dispatcher from files.

    Args:
        mapping_path: Mapping XML file
        script_path: Script file; defaults to the mapping's <scriptfiles>,
            resolved relative to the mapping file

    Raises:
        FileNotFoundError: Missing mapping or script file
        ParseError: Invalid mapping document
        ScriptEvaluationError: Script failed during evaluation
    """
    mapping_path = Path(mapping_path)
    document = load_mapping(mapping_path)

    if script_path is not None:
        script_path = Path(script_path)
        if not script_path.exists():
            raise FileNotFoundError(f"Script file not found: {script_path}")
        source = script_path.read_text(encoding="utf-8")
        filename = str(script_path)
    else:
        source = read_script_sources(document, mapping_path.parent)
        filename = ", ".join(f.filename for f in document.script_files) or str(mapping_path)

    return Dispatcher(document, ScriptBridge(source, filename=filename))
