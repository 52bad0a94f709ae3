"""Tests for MARCXML decoding and encoding."""

import logging

import pytest

from marcutil import (
    ControlField,
    DataField,
    EncodingError,
    LengthInvariantError,
    MalformedMarkupError,
    Record,
    Subfield,
    TagRangeError,
    XmlOptions,
    decode_xml,
    decode_xml_collection,
    encode_xml,
    encode_xml_collection,
    encode_xml_formatted,
)
from marcutil.parsing.xml import MARC_NAMESPACE, MARC_SCHEMA_LOCATION
from marcutil.testing import SAMPLE_MARCXML, sample_record

LEADER = "00000nam a2200000 a 4500"

SIMPLE_XML = (
    "<record>"
    f"<leader>{LEADER}</leader>"
    '<controlfield tag="001">123</controlfield>'
    '<datafield tag="245" ind1="1" ind2="0">'
    '<subfield code="a">Title</subfield>'
    "</datafield>"
    "</record>"
)


def simple_record() -> Record:
    record = Record(leader=LEADER)
    record.add_control_field("001", "123")
    record.add_data_field("245", "1", "0", [("a", "Title")])
    return record


class TestXmlEncode:
    """Tests for MARCXML output."""

    def test_compact(self) -> None:
        """Test compact output element by element."""
        assert encode_xml(simple_record()) == SIMPLE_XML

    def test_empty_record_exact(self) -> None:
        """Test an empty record's document round-trips byte for byte."""
        text = "<record><leader>00000ncs a2200000   4500</leader></record>"
        assert encode_xml(decode_xml(text)) == text

    def test_formatted(self) -> None:
        """Test indented output."""
        expected = (
            "<record>\n"
            f"  <leader>{LEADER}</leader>\n"
            '  <controlfield tag="001">123</controlfield>\n'
            '  <datafield tag="245" ind1="1" ind2="0">\n'
            '    <subfield code="a">Title</subfield>\n'
            "  </datafield>\n"
            "</record>"
        )
        assert encode_xml_formatted(simple_record()) == expected

    def test_formatted_custom_indent(self) -> None:
        """Test a custom indentation unit."""
        text = encode_xml_formatted(simple_record(), XmlOptions(indent="\t"))
        assert "\n\t<leader>" in text
        assert "\n\t\t<subfield" in text

    def test_formatted_decodes_to_same_record(self) -> None:
        """Test indentation does not change the decoded data."""
        record = sample_record()
        assert decode_xml(encode_xml_formatted(record)) == decode_xml(encode_xml(record))

    def test_whitespace_content_preserved(self) -> None:
        """Test significant spaces in leaf text survive formatting."""
        record = Record(leader=LEADER)
        record.add_data_field("010", " ", " ", [("a", "  2013565186")])
        decoded = decode_xml(encode_xml_formatted(record))
        assert decoded.values_by_tag_and_code("010", "a") == ["  2013565186"]
        assert decoded.fields[0].indicators == (" ", " ")  # type: ignore[union-attr]

    def test_escaping(self) -> None:
        """Test markup characters in content are escaped and restored."""
        record = Record(leader=LEADER)
        record.add_data_field("245", "1", "0", [("a", 'Rock & Roll <live> "1999"')])
        text = encode_xml(record)
        assert "Rock &amp; Roll &lt;live&gt;" in text
        assert decode_xml(text) == record

    @pytest.mark.parametrize("content", ["a\rb", "a\r\nb", "a\r"])
    def test_carriage_return_preserved(self, content: str) -> None:
        """Test a CR in content is written as a character reference."""
        record = Record(leader=LEADER)
        record.add_control_field("001", content)
        record.add_data_field("500", " ", " ", [("a", content)])
        text = encode_xml(record)
        assert "\r" not in text
        assert "&#13;" in text
        assert decode_xml(text) == record
        assert decode_xml(encode_xml_formatted(record)) == record

    def test_marc21_slim_options(self) -> None:
        """Test namespace, schema location and declaration output."""
        text = encode_xml(simple_record(), XmlOptions.marc21_slim())
        assert text.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<record ')
        assert f'xmlns="{MARC_NAMESPACE}"' in text
        assert f'xsi:schemaLocation="{MARC_SCHEMA_LOCATION}"' in text
        assert decode_xml(text) == simple_record()

    def test_illegal_character(self) -> None:
        """Test content XML cannot carry is rejected."""
        record = Record(leader=LEADER)
        record.add_control_field("001", "a\x1fb")
        with pytest.raises(MalformedMarkupError, match="field 0"):
            encode_xml(record)

    def test_method_shortcut(self) -> None:
        """Test Record.to_xml and Record.from_xml."""
        record = simple_record()
        assert record.to_xml() == SIMPLE_XML
        assert record.to_xml(formatted=True) == encode_xml_formatted(record)
        assert Record.from_xml(SIMPLE_XML) == record


class TestXmlOptions:
    """Tests for XmlOptions validation."""

    def test_defaults(self) -> None:
        """Test the default options write a bare record."""
        options = XmlOptions.default()
        assert not options.namespace
        assert not options.xml_declaration
        assert options.indent == "  "

    def test_non_whitespace_indent(self) -> None:
        """Test indentation must be whitespace."""
        with pytest.raises(ValueError, match="indent"):
            XmlOptions(indent="--")

    def test_schema_location_requires_namespace(self) -> None:
        """Test schema location cannot be used alone."""
        with pytest.raises(ValueError, match="namespace"):
            XmlOptions(schema_location=True)


class TestXmlDecode:
    """Tests for MARCXML input."""

    def test_namespaced_sample(self) -> None:
        """Test the namespaced sample document decodes to the sample record."""
        record = decode_xml(SAMPLE_MARCXML)
        assert record == sample_record()
        assert record.leader == "07649cim a2200913 i 4500"

    def test_bytes_input(self) -> None:
        """Test a UTF-8 bytes document decodes."""
        assert decode_xml(SAMPLE_MARCXML.encode("utf-8")) == sample_record()

    def test_element_kind_preserved(self) -> None:
        """Test each element name decodes to its field variant."""
        text = (
            f"<record><leader>{LEADER}</leader>"
            '<controlfield tag="001">1</controlfield>'
            '<datafield tag="245" ind1=" " ind2=" "/>'
            "</record>"
        )
        record = decode_xml(text)
        assert record.fields == [ControlField("001", "1"), DataField("245")]

    @pytest.mark.parametrize(
        "element",
        [
            '<controlfield tag="245">x</controlfield>',
            '<datafield tag="001" ind1=" " ind2=" "/>',
        ],
    )
    def test_element_kind_must_match_tag(self, element: str) -> None:
        """Test an element whose tag belongs to the other field kind."""
        with pytest.raises(TagRangeError):
            decode_xml(f"<record><leader>{LEADER}</leader>{element}</record>")

    def test_missing_text_is_empty(self) -> None:
        """Test empty elements decode to empty content."""
        text = (
            f"<record><leader>{LEADER}</leader>"
            '<controlfield tag="001"/>'
            '<datafield tag="245" ind1="1" ind2="0"><subfield code="a"/></datafield>'
            "</record>"
        )
        record = decode_xml(text)
        assert record.control_field("001") == ""
        assert record.fields[1].subfields == [Subfield("a", "")]  # type: ignore[union-attr]

    def test_field_order_preserved(self) -> None:
        """Test document order is kept across field kinds."""
        text = (
            f"<record><leader>{LEADER}</leader>"
            '<datafield tag="650" ind1=" " ind2="0"><subfield code="a">x</subfield></datafield>'
            '<controlfield tag="001">1</controlfield>'
            '<datafield tag="100" ind1="1" ind2=" "><subfield code="a">y</subfield></datafield>'
            "</record>"
        )
        assert [f.tag for f in decode_xml(text)] == ["650", "001", "100"]

    def test_unknown_elements_ignored(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test unrecognized elements are skipped and logged."""
        text = (
            f"<record><leader>{LEADER}</leader>"
            "<note>ignored</note>"
            '<datafield tag="245" ind1="1" ind2="0">'
            '<subfield code="a">T</subfield><extra/>'
            "</datafield>"
            "</record>"
        )
        with caplog.at_level(logging.DEBUG, logger="marcutil.parsing.xml"):
            record = decode_xml(text)
        assert [f.tag for f in record] == ["245"]
        assert "note" in caplog.text

    @pytest.mark.parametrize(
        "element",
        [
            "<controlfield>1</controlfield>",
            '<datafield ind1=" " ind2=" "/>',
            '<datafield tag="245" ind2=" "/>',
            '<datafield tag="245" ind1=" "/>',
            '<datafield tag="245" ind1=" " ind2=" "><subfield>x</subfield></datafield>',
        ],
    )
    def test_missing_attribute(self, element: str) -> None:
        """Test each required attribute."""
        text = f"<record><leader>{LEADER}</leader>{element}</record>"
        with pytest.raises(MalformedMarkupError, match="missing required attribute"):
            decode_xml(text)

    def test_missing_leader(self) -> None:
        """Test a record without a leader."""
        with pytest.raises(MalformedMarkupError, match="no <leader>"):
            decode_xml('<record><controlfield tag="001">1</controlfield></record>')

    def test_duplicate_leader(self) -> None:
        """Test a record with two leaders."""
        text = f"<record><leader>{LEADER}</leader><leader>{LEADER}</leader></record>"
        with pytest.raises(MalformedMarkupError, match="more than one"):
            decode_xml(text)

    def test_wrong_root(self) -> None:
        """Test a document whose root is not a record."""
        with pytest.raises(MalformedMarkupError, match="Expected <record>"):
            decode_xml(f"<marc><leader>{LEADER}</leader></marc>")

    def test_ill_formed(self) -> None:
        """Test markup that does not parse."""
        with pytest.raises(MalformedMarkupError, match="Ill-formed"):
            decode_xml(f"<record><leader>{LEADER}</leader>")

    def test_entity_expansion_refused(self) -> None:
        """Test documents declaring entities are rejected."""
        text = (
            '<!DOCTYPE record [<!ENTITY x "boom">]>'
            f"<record><leader>{LEADER}</leader>"
            '<controlfield tag="001">&x;</controlfield></record>'
        )
        with pytest.raises(MalformedMarkupError, match="Forbidden"):
            decode_xml(text)

    @pytest.mark.parametrize("tag", ["24", "2450"])
    def test_bad_tag_length(self, tag: str) -> None:
        """Test wrong-length tags propagate LengthInvariantError."""
        text = (
            f"<record><leader>{LEADER}</leader>"
            f'<datafield tag="{tag}" ind1=" " ind2=" "/></record>'
        )
        with pytest.raises(LengthInvariantError):
            decode_xml(text)

    def test_bad_indicator_length(self) -> None:
        """Test an empty indicator attribute."""
        text = f'<record><leader>{LEADER}</leader><datafield tag="245" ind1="" ind2=" "/></record>'
        with pytest.raises(LengthInvariantError, match="ind1"):
            decode_xml(text)

    def test_bad_leader_length(self) -> None:
        """Test a short leader."""
        with pytest.raises(LengthInvariantError, match="leader"):
            decode_xml("<record><leader>short</leader></record>")

    def test_invalid_utf8_bytes(self) -> None:
        """Test a bytes document that is not UTF-8."""
        data = (
            f"<record><leader>{LEADER}</leader>".encode()
            + b'<controlfield tag="001">caf\xe9</controlfield></record>'
        )
        with pytest.raises(EncodingError):
            decode_xml(data)


class TestXmlCollection:
    """Tests for multi-record collection documents."""

    def test_round_trip(self) -> None:
        """Test a collection of records encodes and decodes."""
        records = [sample_record(), simple_record()]
        text = encode_xml_collection(records)
        assert text.startswith("<collection><record>")
        assert decode_xml_collection(text) == records

    def test_formatted_namespaced(self) -> None:
        """Test a formatted, namespaced collection decodes."""
        records = [simple_record(), simple_record()]
        text = encode_xml_collection(records, XmlOptions(namespace=True), formatted=True)
        assert f'<collection xmlns="{MARC_NAMESPACE}">' in text
        assert decode_xml_collection(text) == records

    def test_single_record_root(self) -> None:
        """Test a bare record document decodes as a one-item collection."""
        assert decode_xml_collection(SIMPLE_XML) == [simple_record()]

    def test_empty_collection(self) -> None:
        """Test a collection with no records."""
        assert decode_xml_collection("<collection/>") == []

    def test_wrong_root(self) -> None:
        """Test an unexpected root element."""
        with pytest.raises(MalformedMarkupError, match="collection"):
            decode_xml_collection("<records/>")
