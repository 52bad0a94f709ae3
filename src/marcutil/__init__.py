"""marcutil - Read, write and convert MARC bibliographic records.

This library provides a validated in-memory model of MARC records and
lossless conversion between it and three representations:
- ISO 2709 binary records (MARC21 framing)
- MARCXML
- Breaker text, one line per field

Example:
    from marcutil import Record, iter_binary_records

    with open("records.mrc", "rb") as f:
        for record in iter_binary_records(f):
            print(record.get_field("245"))

    record = Record(leader="00000nam a2200000 a 4500")
    record.add_control_field("001", "ocm12345")
    record.add_data_field("245", "1", "0", [("a", "Title :"), ("b", "subtitle")])
    print(record.to_breaker())
    xml = record.to_xml(formatted=True)
"""

__version__ = "0.1.0"

from .exceptions import (
    EncodingError,
    FormatError,
    LengthInvariantError,
    MalformedLineError,
    MalformedMarkupError,
    MarcError,
    MissingTagError,
    RecordOverflowError,
    StructuralError,
    TagRangeError,
    ValidationError,
)
from .models import ControlField, DataField, Field, Record, Subfield
from .parsing import (
    BinaryRecordReader,
    BinaryRecordWriter,
    BreakerOptions,
    XmlOptions,
    decode_binary,
    decode_breaker,
    decode_xml,
    decode_xml_collection,
    encode_binary,
    encode_breaker,
    encode_xml,
    encode_xml_collection,
    encode_xml_formatted,
    iter_binary_records,
    next_binary_record,
)

__all__ = [
    # Core classes
    "ControlField",
    "DataField",
    "Field",
    "Record",
    "Subfield",
    # Binary
    "BinaryRecordReader",
    "BinaryRecordWriter",
    "decode_binary",
    "encode_binary",
    "iter_binary_records",
    "next_binary_record",
    # XML
    "XmlOptions",
    "decode_xml",
    "decode_xml_collection",
    "encode_xml",
    "encode_xml_collection",
    "encode_xml_formatted",
    # Breaker
    "BreakerOptions",
    "decode_breaker",
    "encode_breaker",
    # Exceptions
    "EncodingError",
    "FormatError",
    "LengthInvariantError",
    "MalformedLineError",
    "MalformedMarkupError",
    "MarcError",
    "MissingTagError",
    "RecordOverflowError",
    "StructuralError",
    "TagRangeError",
    "ValidationError",
]
