"""MARCXML decoding and encoding.

Documents are parsed with defusedxml, so entity expansion and external
references are refused before any record data is read. Elements are
matched by local name: namespaced MARC21 slim documents and bare
``<record>`` documents decode the same way.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from xml.etree.ElementTree import Element, ParseError, SubElement, indent, tostring

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as DefusedET

from ..exceptions import MalformedMarkupError
from ..models import ControlField, DataField, Record, Subfield
from ..validation import validate_content

logger = logging.getLogger(__name__)

MARC_NAMESPACE = "http://www.loc.gov/MARC21/slim"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
MARC_SCHEMA_LOCATION = (
    "http://www.loc.gov/MARC21/slim "
    "http://www.loc.gov/standards/marcxml/schema/MARC21slim.xsd"
)
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

# Characters XML 1.0 cannot carry, even escaped
_ILLEGAL_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


@dataclass(frozen=True, slots=True)
class XmlOptions:
    """Output settings for the MARCXML encoder.

    Attributes:
        namespace: Declare the MARC21 slim namespace on the root element
        schema_location: Add the xsi:schemaLocation pointing at MARC21slim.xsd
        xml_declaration: Prefix the document with an XML declaration
        indent: Indentation unit used by the formatted encoder
    """

    namespace: bool = False
    schema_location: bool = False
    xml_declaration: bool = False
    indent: str = "  "

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.indent.strip():
            raise ValueError(f"indent must be whitespace only, got {self.indent!r}")
        if self.schema_location and not self.namespace:
            raise ValueError("schema_location requires namespace=True")

    @classmethod
    def default(cls) -> XmlOptions:
        """Bare ``<record>`` output with no namespace or declaration."""
        return cls()

    @classmethod
    def marc21_slim(cls) -> XmlOptions:
        """Fully qualified MARC21 slim output with schema location and declaration."""
        return cls(namespace=True, schema_location=True, xml_declaration=True)


# --- Decoding ---


def _local_name(tag: str) -> str:
    """Strip a ``{namespace}`` prefix from an element name."""
    return tag.rsplit("}", 1)[-1]


def _require_attribute(elem: Element, name: str) -> str:
    value = elem.get(name)
    if value is None:
        raise MalformedMarkupError(
            f"<{_local_name(elem.tag)}> element missing required attribute {name!r}"
        )
    return value


def _parse_document(text: str | bytes) -> Element:
    if isinstance(text, (bytes, bytearray)):
        validate_content(text, "MARCXML document")
    try:
        return DefusedET.fromstring(text)
    except ParseError as e:
        raise MalformedMarkupError(f"Ill-formed MARCXML: {e}") from e
    except DefusedXmlException as e:
        raise MalformedMarkupError(f"Forbidden construct in MARCXML: {e}") from e


def _record_from_element(root: Element) -> Record:
    if _local_name(root.tag) != "record":
        raise MalformedMarkupError(
            f"Expected <record> element, got <{_local_name(root.tag)}>"
        )

    leader: str | None = None
    record = Record()

    for child in root:
        name = _local_name(child.tag)
        if name == "leader":
            if leader is not None:
                raise MalformedMarkupError("Record has more than one <leader>")
            leader = child.text or ""
            record.leader = leader
        elif name == "controlfield":
            record.fields.append(
                ControlField(_require_attribute(child, "tag"), child.text or "")
            )
        elif name == "datafield":
            data_field = DataField(
                _require_attribute(child, "tag"),
                _require_attribute(child, "ind1"),
                _require_attribute(child, "ind2"),
            )
            for sub in child:
                if _local_name(sub.tag) != "subfield":
                    logger.debug("Ignoring <%s> inside datafield", _local_name(sub.tag))
                    continue
                data_field.subfields.append(
                    Subfield(_require_attribute(sub, "code"), sub.text or "")
                )
            record.fields.append(data_field)
        else:
            logger.debug("Ignoring unknown <%s> element", name)

    if leader is None:
        raise MalformedMarkupError("Record has no <leader>")

    logger.debug("Decoded MARCXML record with %d fields", len(record.fields))
    return record


def decode_xml(text: str | bytes) -> Record:
    """Decode a single MARCXML record.

    Args:
        text: Document whose root element is ``record``

    Returns:
        Decoded Record

    Raises:
        EncodingError: If a bytes document is not valid UTF-8
        MalformedMarkupError: If the document is ill-formed, has the wrong
            root, lacks a leader or a required attribute
        LengthInvariantError: If a tag, indicator, code or leader has the
            wrong length
    """
    return _record_from_element(_parse_document(text))


def decode_xml_collection(text: str | bytes) -> list[Record]:
    """Decode every record in a MARCXML ``collection`` document.

    A document whose root is a single ``record`` yields a one-item list.
    """
    root = _parse_document(text)
    name = _local_name(root.tag)
    if name == "record":
        return [_record_from_element(root)]
    if name != "collection":
        raise MalformedMarkupError(f"Expected <collection> or <record>, got <{name}>")
    return [
        _record_from_element(child)
        for child in root
        if _local_name(child.tag) == "record"
    ]


# --- Encoding ---


def _checked_text(value: str, where: str) -> str:
    if _ILLEGAL_XML_CHARS.search(value):
        raise MalformedMarkupError(f"{where} contains a character XML cannot represent")
    return value


def _declare_namespaces(root: Element, options: XmlOptions) -> None:
    if options.namespace:
        root.set("xmlns", MARC_NAMESPACE)
    if options.schema_location:
        root.set("xmlns:xsi", XSI_NAMESPACE)
        root.set("xsi:schemaLocation", MARC_SCHEMA_LOCATION)


def _build_record(record: Record, parent: Element | None = None) -> Element:
    elem = Element("record") if parent is None else SubElement(parent, "record")
    SubElement(elem, "leader").text = _checked_text(record.leader, "leader")

    for index, f in enumerate(record.fields):
        where = f"field {index} ({f.tag})"
        if isinstance(f, ControlField):
            cf = SubElement(elem, "controlfield", tag=_checked_text(f.tag, where))
            cf.text = _checked_text(f.content, where)
        else:
            df = SubElement(
                elem,
                "datafield",
                tag=_checked_text(f.tag, where),
                ind1=_checked_text(f.ind1, where),
                ind2=_checked_text(f.ind2, where),
            )
            for sf in f.subfields:
                SubElement(df, "subfield", code=_checked_text(sf.code, where)).text = (
                    _checked_text(sf.content, where)
                )
    return elem


def _serialize(root: Element, options: XmlOptions, formatted: bool) -> str:
    _declare_namespaces(root, options)
    if formatted:
        indent(root, space=options.indent)
    text = tostring(root, encoding="unicode")
    # A literal CR in text content is read back as LF; attributes are
    # already escaped by ElementTree, so any CR left here is content.
    text = text.replace("\r", "&#13;")
    if options.xml_declaration:
        text = XML_DECLARATION + text
    return text


def encode_xml(record: Record, options: XmlOptions | None = None) -> str:
    """Encode a record as a compact MARCXML document.

    Args:
        record: Record to encode
        options: Output settings (bare ``<record>`` by default)

    Returns:
        MARCXML text
    """
    return _serialize(_build_record(record), options or XmlOptions.default(), False)


def encode_xml_formatted(record: Record, options: XmlOptions | None = None) -> str:
    """Encode a record as indented MARCXML.

    Only whitespace between elements differs from ``encode_xml``; the
    decoded record is the same.
    """
    return _serialize(_build_record(record), options or XmlOptions.default(), True)


def encode_xml_collection(
    records: Iterable[Record],
    options: XmlOptions | None = None,
    formatted: bool = False,
) -> str:
    """Encode several records inside a ``<collection>`` root."""
    root = Element("collection")
    count = 0
    for record in records:
        _build_record(record, root)
        count += 1
    logger.debug("Encoded MARCXML collection of %d records", count)
    return _serialize(root, options or XmlOptions.default(), formatted)
