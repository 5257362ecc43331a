"""
Mapping Document - immutable binding model parsed from controller-preset XML.

Document layout (root element name is not checked):

    <MixxxControllerPreset>
      <info>
        <name>Generic 2-deck</name>
        <author>...</author>
        <description>...</description>
      </info>
      <controller id="Generic">
        <scriptfiles>
          <file filename="generic.py" functionprefix="Generic"/>
        </scriptfiles>
        <controls>
          <control>
            <group>[Channel1]</group>
            <key>play</key>
            <status>0x90</status>
            <midino>0x3C</midino>
            <options><normal/></options>
          </control>
        </controls>
        <outputs>
          <output>
            <group>[Channel1]</group>
            <key>play_indicator</key>
            <status>0x90</status>
            <midino>0x3C</midino>
            <minimum>0.5</minimum>
            <on>0x7F</on>
          </output>
        </outputs>
      </controller>
    </MixxxControllerPreset>

Required per binding: group, key, status, midino. A missing required field
raises ParseError and aborts the whole document. <info>, <scriptfiles>,
<controls> and <outputs> are optional and default to empty.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Tuple, Union

from deckmap.errors import ParseError
from deckmap.log import get_logger

logger = get_logger(__name__)


# Option flag marking a binding whose handler lives in the mapping script
SCRIPT_BINDING = "script-binding"

# Document element that holds the identifier byte
IDENTIFIER_TAG = "midino"

OUTPUT_THRESHOLDS = ("minimum", "maximum", "on", "off")


# ============================================================================
# DATA MODEL
# ============================================================================

@dataclass(frozen=True)
class ControlBinding:
    """Incoming binding: (status, identifier) -> group/key.

    Attributes:
        group (str): Logical unit, e.g. "[Channel1]" or "[Master]"
        key (str): Semantic function (rule key or dotted script handler path)
        status (int): Status byte to match
        identifier (int): First data byte to match
        options (frozenset): Lower-cased option flags, e.g. {"script-binding"}
    """
    group: str
    key: str
    status: int
    identifier: int
    options: FrozenSet[str] = frozenset()

    @property
    def is_script_binding(self) -> bool:
        return SCRIPT_BINDING in self.options


@dataclass(frozen=True)
class OutputBinding:
    """Outgoing (feedback) binding; parsed and kept for outgoing translation."""
    group: str
    key: str
    status: int
    identifier: int
    options: FrozenSet[str] = frozenset()
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    on: Optional[int] = None
    off: Optional[int] = None


@dataclass(frozen=True)
class MappingInfo:
    name: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class ScriptFile:
    """Script declared by the document, with its handler namespace."""
    filename: str
    function_prefix: Optional[str] = None


@dataclass(frozen=True)
class MappingDocument:
    """Parsed controller mapping.

    Built once at load time and never mutated. Bindings keep document
    order; when two controls share (status, identifier) the first declared
    wins every lookup.
    """
    info: MappingInfo = MappingInfo()
    controls: Tuple[ControlBinding, ...] = ()
    outputs: Tuple[OutputBinding, ...] = ()
    script_files: Tuple[ScriptFile, ...] = ()
    controller_id: Optional[str] = None
    _index: Dict[Tuple[int, int], ControlBinding] = field(
        default=None, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        index: Dict[Tuple[int, int], ControlBinding] = {}
        for binding in self.controls:
            index.setdefault((binding.status, binding.identifier), binding)
        object.__setattr__(self, "_index", index)

    def find_control(self, status: int, identifier: int) -> Optional[ControlBinding]:
        """Resolve the first declared control bound to (status, identifier)."""
        return self._index.get((status, identifier))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, xml_source: str) -> "MappingDocument":
        """Parse mapping XML text.

        Raises:
            ParseError: Malformed XML or a binding missing a required field
        """
        try:
            root = ET.fromstring(xml_source)
        except ET.ParseError as e:
            raise ParseError("document", "xml", detail=str(e)) from e
        return cls.from_element(root)

    @classmethod
    def from_element(cls, root: ET.Element) -> "MappingDocument":
        """Build a document from an already parsed element tree."""
        controller = root.find("controller")
        if controller is None:
            raise ParseError("controller", root.tag)

        info = _parse_info(root.find("info"))
        script_files = tuple(
            _parse_script_file(element, i)
            for i, element in enumerate(controller.findall("scriptfiles/file"), start=1)
        )
        controls = tuple(
            _parse_control(element, i)
            for i, element in enumerate(controller.findall("controls/control"), start=1)
        )
        outputs = tuple(
            _parse_output(element, i)
            for i, element in enumerate(controller.findall("outputs/output"), start=1)
        )

        document = cls(
            info=info,
            controls=controls,
            outputs=outputs,
            script_files=script_files,
            controller_id=controller.get("id"),
        )
        logger.info(
            f"Parsed mapping '{info.name or controller.get('id') or 'unnamed'}': "
            f"{len(controls)} controls, {len(outputs)} outputs, {len(script_files)} script files"
        )
        return document


def load_mapping(path: Union[str, Path]) -> MappingDocument:
    """Read and parse a mapping file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ParseError: If the document is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Mapping file not found: {path}")
    logger.debug(f"Loading mapping from {path}")
    return MappingDocument.parse(path.read_text(encoding="utf-8"))


# ============================================================================
# ELEMENT PARSING
# ============================================================================

def parse_number(text: str) -> Union[int, float]:
    """Parse a decimal or 0x-prefixed hex literal.

    Examples:
        >>> parse_number("0x7F")
        127
        >>> parse_number("60")
        60
        >>> parse_number("0.5")
        0.5
    """
    text = text.strip()
    if text.lower().startswith(("0x", "-0x")):
        return int(text, 16)
    try:
        return int(text, 10)
    except ValueError:
        return float(text)


def _text(element: Optional[ET.Element]) -> Optional[str]:
    if element is None or element.text is None:
        return None
    text = element.text.strip()
    return text or None


def _required_text(element: ET.Element, tag: str, index: int) -> str:
    text = _text(element.find(tag))
    if text is None:
        raise ParseError(tag, element.tag, index)
    return text


def _required_byte(element: ET.Element, tag: str, index: int) -> int:
    text = _required_text(element, tag, index)
    try:
        value = parse_number(text)
    except ValueError:
        raise ParseError(tag, element.tag, index, detail=f"not a number: {text!r}") from None
    if not isinstance(value, int) or not 0 <= value <= 0xFF:
        raise ParseError(tag, element.tag, index, detail=f"not a byte: {text!r}")
    return value


def _optional_number(element: ET.Element, tag: str, index: int) -> Optional[Union[int, float]]:
    text = _text(element.find(tag))
    if text is None:
        return None
    try:
        return parse_number(text)
    except ValueError:
        raise ParseError(tag, element.tag, index, detail=f"not a number: {text!r}") from None


def _parse_options(element: ET.Element) -> FrozenSet[str]:
    options = element.find("options")
    if options is None:
        return frozenset()
    return frozenset(child.tag.lower() for child in options)


def _parse_binding_fields(element: ET.Element, index: int) -> dict:
    return {
        "group": _required_text(element, "group", index),
        "key": _required_text(element, "key", index),
        "status": _required_byte(element, "status", index),
        "identifier": _required_byte(element, IDENTIFIER_TAG, index),
        "options": _parse_options(element),
    }


def _parse_control(element: ET.Element, index: int) -> ControlBinding:
    return ControlBinding(**_parse_binding_fields(element, index))


def _parse_output(element: ET.Element, index: int) -> OutputBinding:
    fields = _parse_binding_fields(element, index)
    for name in OUTPUT_THRESHOLDS:
        fields[name] = _optional_number(element, name, index)
    return OutputBinding(**fields)


def _parse_info(element: Optional[ET.Element]) -> MappingInfo:
    if element is None:
        return MappingInfo()
    return MappingInfo(
        name=_text(element.find("name")),
        author=_text(element.find("author")),
        description=_text(element.find("description")),
    )


def _parse_script_file(element: ET.Element, index: int) -> ScriptFile:
    filename = element.get("filename")
    if not filename:
        raise ParseError("filename", element.tag, index)
    return ScriptFile(filename=filename, function_prefix=element.get("functionprefix") or None)
