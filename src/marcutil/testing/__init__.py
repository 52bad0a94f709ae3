"""Test utilities for marcutil.

Provides a realistic sample record (a printed music score with ISBN,
UPC and publisher number fields) and a low-level builder for ISO 2709
bytes. The builder writes whatever it is told, so tests can produce
records with wrong lengths, missing terminators or bad directory
entries that the encoder would never emit.

Example:
    >>> data = build_binary_record([("001", b"233"), ("245", raw_data_field(b"10", (b"a", b"Title")))])
    >>> Record.from_binary(data).control_field("001")
    '233'
"""

from __future__ import annotations

from collections.abc import Iterable

from marcutil.models import Record
from marcutil.parsing.binary import FIELD_TERMINATOR, RECORD_TERMINATOR, SUBFIELD_DELIMITER

SAMPLE_LEADER = "07649cim a2200913 i 4500"

SAMPLE_MARCXML = """<?xml version="1.0"?>
<record
  xmlns="http://www.loc.gov/MARC21/slim"
  xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
  xsi:schemaLocation="http://www.loc.gov/MARC21/slim http://www.loc.gov/standards/marcxml/schema/MARC21slim.xsd">
  <leader>07649cim a2200913 i 4500</leader>
  <controlfield tag="001">233</controlfield>
  <controlfield tag="003">CONS</controlfield>
  <controlfield tag="005">20140128084328.0</controlfield>
  <controlfield tag="008">140128s2013    nyuopk|zqdefhi n  | ita d</controlfield>
  <datafield tag="010" ind1=" " ind2=" ">
    <subfield code="a">  2013565186</subfield>
  </datafield>
  <datafield tag="020" ind1=" " ind2=" ">
    <subfield code="a">9781480328532</subfield>
  </datafield>
  <datafield tag="020" ind1=" " ind2=" ">
    <subfield code="a">1480328537</subfield>
  </datafield>
  <datafield tag="024" ind1="1" ind2=" ">
    <subfield code="a">884088883249</subfield>
  </datafield>
  <datafield tag="028" ind1="3" ind2="2">
    <subfield code="a">HL50498721</subfield>
    <subfield code="b">Hal Leonard</subfield>
    <subfield code="q">(bk.)</subfield>
  </datafield>
</record>
"""

DEFAULT_TEST_LEADER = b"00000nam a2200000 a 4500"


def sample_record() -> Record:
    """Build a fresh copy of the record described by ``SAMPLE_MARCXML``."""
    record = Record(leader=SAMPLE_LEADER)
    record.add_control_field("001", "233")
    record.add_control_field("003", "CONS")
    record.add_control_field("005", "20140128084328.0")
    record.add_control_field("008", "140128s2013    nyuopk|zqdefhi n  | ita d")
    record.add_data_field("010", " ", " ", [("a", "  2013565186")])
    record.add_data_field("020", " ", " ", [("a", "9781480328532")])
    record.add_data_field("020", " ", " ", [("a", "1480328537")])
    record.add_data_field("024", "1", " ", [("a", "884088883249")])
    record.add_data_field(
        "028", "3", "2", [("a", "HL50498721"), ("b", "Hal Leonard"), ("q", "(bk.)")]
    )
    return record


def raw_data_field(indicators: bytes, *subfields: tuple[bytes, bytes]) -> bytes:
    """Render data field bytes (indicators and subfields, no terminator)."""
    return indicators + b"".join(
        bytes([SUBFIELD_DELIMITER]) + code + content for code, content in subfields
    )


def build_binary_record(
    fields: Iterable[tuple[str | bytes, bytes]] = (),
    leader: bytes = DEFAULT_TEST_LEADER,
    *,
    declared_lengths: dict[int, int] | None = None,
    record_length: int | None = None,
    base_address: int | None = None,
    record_terminator: bool = True,
) -> bytes:
    """Assemble ISO 2709 bytes from raw field data.

    Each field's data gets a field terminator appended and a directory
    entry computed from its real length and offset, unless overridden.

    Args:
        fields: (tag, data) pairs; data excludes the field terminator
        leader: 24-byte leader; bytes 0-4 and 12-16 are filled in
        declared_lengths: Directory length to write for field N instead
            of the real one
        record_length: Value for leader bytes 0-4 instead of the real length
        base_address: Value for leader bytes 12-16 instead of the real one
        record_terminator: Whether to append the 0x1D record terminator

    Returns:
        The assembled bytes
    """
    declared_lengths = declared_lengths or {}
    directory = b""
    data_area = b""
    for index, (tag, data) in enumerate(fields):
        raw_tag = tag.encode("utf-8") if isinstance(tag, str) else tag
        chunk = data + bytes([FIELD_TERMINATOR])
        length = declared_lengths.get(index, len(chunk))
        directory += raw_tag + b"%04d%05d" % (length, len(data_area))
        data_area += chunk

    real_base = len(leader) + len(directory) + 1
    real_length = real_base + len(data_area) + (1 if record_terminator else 0)

    head = bytearray(leader)
    head[0:5] = b"%05d" % (real_length if record_length is None else record_length)
    head[12:17] = b"%05d" % (real_base if base_address is None else base_address)

    result = bytes(head) + directory + bytes([FIELD_TERMINATOR]) + data_area
    if record_terminator:
        result += bytes([RECORD_TERMINATOR])
    return result


__all__ = [
    "DEFAULT_TEST_LEADER",
    "SAMPLE_LEADER",
    "SAMPLE_MARCXML",
    "build_binary_record",
    "raw_data_field",
    "sample_record",
]
