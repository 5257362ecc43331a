"""Error taxonomy for mapping load and dispatch."""

from typing import Optional


class DeckmapError(Exception):
    """Base class for all deckmap errors."""


class ParseError(DeckmapError):
    """A mapping document is missing a required field or is malformed.

    Always fatal to mapping construction: no partially valid document is
    ever returned.

    Attributes:
        field: Name of the missing or malformed field
        element: Tag of the element that carried (or lacked) the field
        index: 1-based position of the element among its siblings, if known
    """

    def __init__(self, field: str, element: str, index: Optional[int] = None, detail: Optional[str] = None):
        self.field = field
        self.element = element
        self.index = index
        where = f"<{element}>" if index is None else f"<{element}> #{index}"
        message = f"Missing required field '{field}' in {where}"
        if detail:
            message = f"Invalid field '{field}' in {where}: {detail}"
        super().__init__(message)


class ScriptEvaluationError(DeckmapError):
    """Mapping script failed during its one-time top-level evaluation."""


class InvalidMessageError(DeckmapError):
    """Protocol message cannot be dispatched (bad byte or too few data bytes)."""


class ValueReadUnsupportedError(DeckmapError, NotImplementedError):
    """Raised by engine.getValue; the engine never fabricates a value."""
