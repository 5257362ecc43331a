"""
Tests for mapping document parsing.

Tests cover:
1. Binding fields, order and options
2. Required field validation (whole document aborts)
3. Optional sections (info, outputs, scriptfiles)
4. Numeric literal forms
5. First-declared-wins resolution
"""

import xml.etree.ElementTree as ET

import pytest

from deckmap.errors import ParseError
from deckmap.mapping import (
    ControlBinding,
    MappingDocument,
    MappingInfo,
    ScriptFile,
    load_mapping,
    parse_number,
)
from tests.utils import control_xml, mapping_xml


class TestControlParsing:
    """Test <control> element parsing."""

    def test_fields(self):
        doc = MappingDocument.parse(mapping_xml([control_xml("[Channel1]", "play", "0x90", "60")]))

        assert doc.controls == (
            ControlBinding("[Channel1]", "play", 0x90, 60, frozenset({"normal"})),
        )

    def test_count_and_order_preserved(self):
        keys = ["play", "cue_default", "volume", "pregain", "rate"]
        controls = [control_xml("[Channel1]", key, "0x90", str(i)) for i, key in enumerate(keys)]
        doc = MappingDocument.parse(mapping_xml(controls))

        assert len(doc.controls) == len(keys)
        assert [c.key for c in doc.controls] == keys

    def test_options_case_normalized(self):
        xml = mapping_xml([control_xml("[Channel1]", "Deck.play", "0x90", "1", options=("Script-Binding",))])
        binding = MappingDocument.parse(xml).controls[0]

        assert binding.options == frozenset({"script-binding"})
        assert binding.is_script_binding

    def test_missing_options_is_empty(self):
        xml = mapping_xml([
            "<control><group>[Channel1]</group><key>play</key>"
            "<status>0x90</status><midino>1</midino></control>"
        ])
        binding = MappingDocument.parse(xml).controls[0]
        assert binding.options == frozenset()
        assert not binding.is_script_binding

    def test_whitespace_trimmed(self):
        xml = mapping_xml([
            "<control><group>\n  [Channel2]\n</group><key> volume </key>"
            "<status> 0xB1 </status><midino> 0x1C </midino></control>"
        ])
        binding = MappingDocument.parse(xml).controls[0]
        assert binding.group == "[Channel2]"
        assert binding.key == "volume"
        assert (binding.status, binding.identifier) == (0xB1, 0x1C)


class TestRequiredFields:
    """Missing required fields abort the whole document."""

    @pytest.mark.parametrize("field", ["group", "key", "status", "midino"])
    def test_missing_field_raises(self, field):
        parts = {
            "group": "<group>[Channel1]</group>",
            "key": "<key>play</key>",
            "status": "<status>0x90</status>",
            "midino": "<midino>60</midino>",
        }
        del parts[field]
        broken = "<control>" + "".join(parts.values()) + "</control>"
        xml = mapping_xml([control_xml("[Channel1]", "cue_default", "0x90", "1"), broken])

        with pytest.raises(ParseError) as exc_info:
            MappingDocument.parse(xml)

        assert exc_info.value.field == field
        assert exc_info.value.element == "control"
        assert exc_info.value.index == 2
        assert field in str(exc_info.value)

    def test_empty_field_counts_as_missing(self):
        xml = mapping_xml(["<control><group></group><key>play</key><status>1</status><midino>2</midino></control>"])
        with pytest.raises(ParseError, match="'group'"):
            MappingDocument.parse(xml)

    def test_output_missing_field_raises(self):
        xml = mapping_xml(outputs=["<output><group>[Channel1]</group><key>play_indicator</key><status>0x90</status></output>"])
        with pytest.raises(ParseError) as exc_info:
            MappingDocument.parse(xml)
        assert exc_info.value.field == "midino"
        assert exc_info.value.element == "output"

    def test_non_numeric_byte_raises(self):
        xml = mapping_xml([control_xml("[Channel1]", "play", "note", "60")])
        with pytest.raises(ParseError, match="not a number"):
            MappingDocument.parse(xml)

    def test_byte_out_of_range_raises(self):
        xml = mapping_xml([control_xml("[Channel1]", "play", "0x190", "60")])
        with pytest.raises(ParseError, match="not a byte"):
            MappingDocument.parse(xml)

    def test_missing_controller_raises(self):
        with pytest.raises(ParseError, match="controller"):
            MappingDocument.parse("<MixxxControllerPreset><info/></MixxxControllerPreset>")

    def test_malformed_xml_raises(self):
        with pytest.raises(ParseError):
            MappingDocument.parse("<MixxxControllerPreset><controller>")


class TestOptionalSections:

    def test_defaults_when_absent(self):
        doc = MappingDocument.parse("<preset><controller/></preset>")

        assert doc.info == MappingInfo()
        assert doc.controls == ()
        assert doc.outputs == ()
        assert doc.script_files == ()
        assert doc.controller_id is None

    def test_info(self):
        doc = MappingDocument.parse(mapping_xml(info={"name": "MC7000", "author": "someone"}))
        assert doc.info.name == "MC7000"
        assert doc.info.author == "someone"
        assert doc.info.description is None

    def test_outputs_with_thresholds(self):
        output = (
            "<output><group>[Channel1]</group><key>play_indicator</key>"
            "<status>0x90</status><midino>0x3C</midino>"
            "<minimum>0.5</minimum><maximum>1</maximum><on>0x7F</on><off>0x01</off></output>"
        )
        doc = MappingDocument.parse(mapping_xml(outputs=[output]))
        out = doc.outputs[0]

        assert (out.group, out.key, out.status, out.identifier) == ("[Channel1]", "play_indicator", 0x90, 0x3C)
        assert out.minimum == 0.5
        assert out.maximum == 1
        assert out.on == 127
        assert out.off == 1

    def test_output_thresholds_optional(self):
        output = "<output><group>[Channel1]</group><key>k</key><status>1</status><midino>2</midino></output>"
        out = MappingDocument.parse(mapping_xml(outputs=[output])).outputs[0]
        assert (out.minimum, out.maximum, out.on, out.off) == (None, None, None, None)

    def test_scriptfiles_and_controller_id(self):
        doc = MappingDocument.parse(
            mapping_xml(scriptfiles=[("a.py", "A"), ("b.py", "B")], controller_id="MC7000")
        )
        assert doc.controller_id == "MC7000"
        assert doc.script_files == (ScriptFile("a.py", "A"), ScriptFile("b.py", "B"))

    def test_from_element(self):
        root = ET.fromstring(mapping_xml([control_xml("[Channel1]", "play", "144", "60")]))
        doc = MappingDocument.from_element(root)
        assert doc.controls[0].status == 144


class TestResolution:

    def test_find_control(self):
        doc = MappingDocument.parse(mapping_xml([
            control_xml("[Channel1]", "play", "0x90", "60"),
            control_xml("[Channel2]", "play", "0x91", "60"),
        ]))
        assert doc.find_control(0x91, 60).group == "[Channel2]"
        assert doc.find_control(0x92, 60) is None

    def test_first_declared_wins(self):
        doc = MappingDocument.parse(mapping_xml([
            control_xml("[Channel1]", "play", "0x90", "60"),
            control_xml("[Channel1]", "cue_default", "0x90", "0x3C"),
        ]))
        for _ in range(3):
            assert doc.find_control(0x90, 60).key == "play"
        assert len(doc.controls) == 2


class TestParseNumber:

    @pytest.mark.parametrize("text,expected", [
        ("0x7F", 127),
        ("0X10", 16),
        ("60", 60),
        (" 12 ", 12),
        ("0.5", 0.5),
    ])
    def test_forms(self, text, expected):
        assert parse_number(text) == expected

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_number("sixty")


class TestLoadMapping:

    def test_bundled_mapping(self, generic_mapping_path):
        doc = load_mapping(generic_mapping_path)
        assert doc.info.name == "Generic 2-Deck Controller"
        assert doc.controller_id == "Generic2Deck"
        assert len(doc.controls) == 21
        assert len(doc.outputs) == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_mapping(tmp_path / "missing.xml")
