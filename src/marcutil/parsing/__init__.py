"""Record serialization formats.

This module handles conversion between the record model and its three
external representations:
- ISO 2709 binary records, plus stream framing
- MARCXML documents
- Breaker text

Each codec depends only on the record model, never on another codec.
"""

from .binary import (
    FIELD_TERMINATOR,
    RECORD_TERMINATOR,
    SUBFIELD_DELIMITER,
    BinaryRecordDecoder,
    BinaryRecordEncoder,
    BinaryRecordReader,
    BinaryRecordWriter,
    decode_binary,
    encode_binary,
    iter_binary_records,
    next_binary_record,
)
from .breaker import BreakerDecoder, BreakerOptions, decode_breaker, encode_breaker
from .xml import (
    MARC_NAMESPACE,
    XmlOptions,
    decode_xml,
    decode_xml_collection,
    encode_xml,
    encode_xml_collection,
    encode_xml_formatted,
)

__all__ = [
    # Binary
    "FIELD_TERMINATOR",
    "RECORD_TERMINATOR",
    "SUBFIELD_DELIMITER",
    "BinaryRecordDecoder",
    "BinaryRecordEncoder",
    "BinaryRecordReader",
    "BinaryRecordWriter",
    "decode_binary",
    "encode_binary",
    "iter_binary_records",
    "next_binary_record",
    # Breaker
    "BreakerDecoder",
    "BreakerOptions",
    "decode_breaker",
    "encode_breaker",
    # XML
    "MARC_NAMESPACE",
    "XmlOptions",
    "decode_xml",
    "decode_xml_collection",
    "encode_xml",
    "encode_xml_collection",
    "encode_xml_formatted",
]
