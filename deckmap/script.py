"""
Script Bridge - scoped evaluation of mapping scripts.

A mapping may ship a Python script whose top-level functions handle
controls marked <script-binding/>. The script is evaluated exactly once, in
a scope seeded only with the injected capabilities and a reduced builtins
table (no import, file access or eval). Every top-level name the script
binds is harvested into a read-only ScriptContext; binding keys such as
"Generic.wheelTurn" resolve through it by attribute (or item) lookup.

Injected capabilities:
    engine:  setValue/setParameter push actions, getValue always raises
    script:  deckFromGroup helper
    console: log/debug/info/warn/error, routed to the deckmap.script logger

Handler side effects land in a shared action buffer that is reset before
and drained after every invocation. The scope restriction keeps host names
out of reach; it does not make hostile scripts safe to run.

Example script:

    class Generic:
        @staticmethod
        def eqKnob(deck, binding, value, status, group):
            engine.setValue(group, "parameter1", value / 127)
"""

import builtins
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Optional

from deckmap.action import Action, ValueControl
from deckmap.errors import ScriptEvaluationError, ValueReadUnsupportedError
from deckmap.log import get_logger
from deckmap import rules

logger = get_logger(__name__)


SCRIPT_FILENAME = "<mapping script>"
SCRIPT_MODULE_NAME = "__mapping_script__"

# Builtins visible to mapping scripts
SAFE_BUILTIN_NAMES = (
    "__build_class__",
    "abs", "all", "any", "bool", "callable", "chr", "classmethod", "dict",
    "divmod", "enumerate", "filter", "float", "format", "frozenset",
    "getattr", "hasattr", "hex", "int", "isinstance", "issubclass", "iter",
    "len", "list", "map", "max", "min", "next", "object", "ord", "pow",
    "property", "range", "repr", "reversed", "round", "set", "setattr",
    "slice", "sorted", "staticmethod", "str", "sum", "super", "tuple",
    "type", "zip",
    "ArithmeticError", "AttributeError", "Exception", "IndexError",
    "KeyError", "LookupError", "NotImplementedError", "RuntimeError",
    "TypeError", "ValueError", "ZeroDivisionError",
)

SAFE_BUILTINS = MappingProxyType(
    {name: getattr(builtins, name) for name in SAFE_BUILTIN_NAMES}
)


# ============================================================================
# CAPABILITIES
# ============================================================================

class EngineCapability:
    """Host engine surface exposed to scripts as `engine`.

    Mirrors the legacy engine API: values are written by (group, key) and
    translated with the same key table the declarative rules use.
    """

    def __init__(self, push: Callable[[Action], None]):
        self._push = push

    def setValue(self, group: str, key: str, value: float) -> None:
        control = rules.resolve_control(group, key)
        if control is None:
            logger.debug(f"engine.setValue ignored unmapped {group} {key}")
            return
        value = float(value)
        if isinstance(control, ValueControl):
            clamped = min(max(value, 0.0), 1.0)
            if clamped != value:
                logger.debug(f"engine.setValue clamped {group} {key} {value} -> {clamped}")
            value = clamped
        self._push(rules.build_action(control, group, value))

    def setParameter(self, group: str, key: str, value: float) -> None:
        self.setValue(group, key, value)

    def getValue(self, group: str, key: str) -> float:
        raise ValueReadUnsupportedError(
            f"engine.getValue({group!r}, {key!r}) is not supported: "
            f"mapping scripts cannot read host state"
        )


class ScriptCapability:
    """Helpers exposed to scripts as `script`."""

    @staticmethod
    def deckFromGroup(group: str) -> Optional[int]:
        return rules.parse_deck(group)


class ConsoleCapability:
    """Logging exposed to scripts as `console`."""

    def log(self, *args) -> None:
        logger.info(self._join(args))

    info = log

    def debug(self, *args) -> None:
        logger.debug(self._join(args))

    def warn(self, *args) -> None:
        logger.warning(self._join(args))

    warning = warn

    def error(self, *args) -> None:
        logger.error(self._join(args))

    @staticmethod
    def _join(args) -> str:
        return " ".join(str(arg) for arg in args)


# ============================================================================
# SCRIPT BRIDGE
# ============================================================================

class ScriptBridge:
    """Evaluates one mapping script and invokes its handlers.

    Attributes:
        context (Mapping): Read-only name -> object table harvested from
            the script's top level
    """

    def __init__(self, source: Optional[str] = None, filename: str = SCRIPT_FILENAME):
        """Evaluate the script source once.

        Args:
            source: Script text, or None for a mapping without a script
            filename: Name shown in tracebacks

        Raises:
            ScriptEvaluationError: If the source fails to compile or raises
                during top-level evaluation
        """
        self._buffer: List[Action] = []
        self.engine = EngineCapability(self._buffer.append)
        self.script = ScriptCapability()
        self.console = ConsoleCapability()
        self.context: Mapping = MappingProxyType(self._evaluate(source, filename))

    def _capabilities(self) -> Dict[str, Any]:
        return {
            "engine": self.engine,
            "script": self.script,
            "console": self.console,
        }

    def _evaluate(self, source: Optional[str], filename: str) -> Dict[str, Any]:
        if not source:
            return {}

        try:
            code = compile(source, filename, "exec")
        except SyntaxError as e:
            raise ScriptEvaluationError(f"Syntax error in {filename}: {e}") from e

        seeded = self._capabilities()
        scope: Dict[str, Any] = dict(seeded)
        scope["__builtins__"] = dict(SAFE_BUILTINS)
        scope["__name__"] = SCRIPT_MODULE_NAME

        try:
            exec(code, scope)
        except Exception as e:
            raise ScriptEvaluationError(
                f"{filename} raised during evaluation: {type(e).__name__}: {e}"
            ) from e
        finally:
            # Top-level engine calls are not dispatch output
            self._buffer.clear()

        reserved = set(seeded) | {"__builtins__", "__name__"}
        harvested = {name: value for name, value in scope.items() if name not in reserved}
        logger.info(f"Evaluated {filename}: {len(harvested)} top-level names")
        logger.debug(f"Script names: {sorted(harvested)}")
        return harvested

    def resolve(self, key: str) -> Optional[Callable]:
        """Resolve a dotted key path to a callable in the script context.

        Examples:
            >>> bridge = ScriptBridge("class Deck:\\n    def play(*a): pass\\n")
            >>> bridge.resolve("Deck.play") is not None
            True
            >>> bridge.resolve("Deck.missing") is None
            True
        """
        target: Any = self.context
        for part in key.split("."):
            if isinstance(target, Mapping):
                if part not in target:
                    return None
                target = target[part]
            elif hasattr(target, part):
                target = getattr(target, part)
            else:
                return None
        return target if callable(target) else None

    def invoke(self, key: str, *args) -> Optional[List[Action]]:
        """Run the handler at `key` and return the actions it emitted.

        The shared buffer is cleared before the call and drained after it,
        also when the handler raises.

        Returns:
            Emitted actions in call order, or None if no handler resolves
        """
        handler = self.resolve(key)
        if handler is None:
            return None

        self._buffer.clear()
        try:
            handler(*args)
            return self.drain()
        finally:
            self._buffer.clear()

    def drain(self) -> List[Action]:
        """Return buffered actions and empty the buffer."""
        actions = list(self._buffer)
        self._buffer.clear()
        return actions
