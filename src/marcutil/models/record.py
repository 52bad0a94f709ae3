"""Record model: a leader plus an ordered list of fields."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..validation import LEADER_LENGTH, validate_leader
from .field import ControlField, DataField, Field, Subfield, ValidatedList

if TYPE_CHECKING:
    from ..parsing.breaker import BreakerOptions
    from ..parsing.xml import XmlOptions

DEFAULT_LEADER = " " * LEADER_LENGTH

# Leader byte ranges rewritten by every binary encode
RECORD_LENGTH_SLICE = slice(0, 5)
BASE_ADDRESS_SLICE = slice(12, 17)


def _check_field(item: Any) -> Field:
    if not isinstance(item, (ControlField, DataField)):
        raise TypeError(f"Expected ControlField or DataField, got {type(item).__name__}")
    return item


@dataclass
class Record:
    """A MARC record.

    The leader is kept as opaque text; only its length (24 bytes) is
    enforced. Fields keep insertion order, which every codec preserves.

    Two records are equal when their fields are equal in order and their
    leaders match outside positions 00-04 and 12-16. Those positions hold
    the record length and base address, which the binary encoder derives
    on every call.

    Attributes:
        leader: 24-byte leader text
        fields: Control and data fields in record order. Items added
            with list methods must be ``ControlField`` or ``DataField``
    """

    leader: str = DEFAULT_LEADER
    fields: list[Field] = field(default_factory=list)

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "leader":
            value = validate_leader(value)
        elif name == "fields":
            value = ValidatedList(value, _check_field)
        object.__setattr__(self, name, value)

    def set_leader(self, leader: str | bytes) -> None:
        """Replace the leader.

        Raises:
            LengthInvariantError: If leader is not exactly 24 bytes
            EncodingError: If leader is not valid UTF-8
        """
        self.leader = leader

    # --- Field management ---

    def add_field(self, field: Field) -> Field:
        """Append a field to the end of the record.

        Returns:
            The added field
        """
        self.fields.append(field)
        return field

    def add_fields(self, *fields: Field) -> None:
        """Append several fields, keeping their order."""
        self.fields.extend(fields)

    def add_control_field(self, tag: str, content: str = "") -> ControlField:
        """Create and append a control field."""
        return self.add_field(ControlField(tag, content))  # type: ignore[return-value]

    def add_data_field(
        self,
        tag: str,
        ind1: str = " ",
        ind2: str = " ",
        subfields: Iterable[Subfield | tuple[str, str]] | None = None,
    ) -> DataField:
        """Create and append a data field.

        Args:
            tag: Field tag
            ind1: First indicator
            ind2: Second indicator
            subfields: Subfields or (code, content) pairs

        Returns:
            The new data field
        """
        data_field = DataField(tag, ind1, ind2, list(subfields or []))
        self.fields.append(data_field)
        return data_field

    def remove_field(self, field: Field) -> None:
        """Remove one field (matched by identity).

        Raises:
            ValueError: If the field is not in this record
        """
        for i, candidate in enumerate(self.fields):
            if candidate is field:
                del self.fields[i]
                return
        raise ValueError("Field not in this record")

    def remove_fields(self, *tags: str) -> list[Field]:
        """Remove every field with one of the given tags.

        Returns:
            The removed fields, in record order
        """
        removed = [f for f in self.fields if f.tag in tags]
        self.fields = [f for f in self.fields if f.tag not in tags]
        return removed

    # --- Lookups ---

    def fields_by_tag(self, tag: str) -> list[Field]:
        """Get all fields with a tag, in record order.

        The returned objects belong to this record; changing them through
        their attributes changes the record.
        """
        return [f for f in self.fields if f.tag == tag]

    def get_fields(self, *tags: str) -> list[Field]:
        """Get fields matching any of the tags, or all fields if none given."""
        if not tags:
            return list(self.fields)
        return [f for f in self.fields if f.tag in tags]

    def get_field(self, tag: str) -> Field | None:
        """Get the first field with a tag."""
        for f in self.fields:
            if f.tag == tag:
                return f
        return None

    def field_indexes(self, tag: str) -> list[int]:
        """Positions in ``fields`` of every field with the given tag."""
        return [i for i, f in enumerate(self.fields) if f.tag == tag]

    def control_field(self, tag: str) -> str | None:
        """Get the content of the first control field with a tag."""
        for f in self.fields:
            if isinstance(f, ControlField) and f.tag == tag:
                return f.content
        return None

    def values_by_tag_and_code(self, tag: str, code: str) -> list[str]:
        """Get subfield contents for a tag/code pair across all data fields.

        Example:
            >>> record.values_by_tag_and_code("650", "a")
            ['Music', 'Opera']
        """
        values: list[str] = []
        for f in self.fields:
            if isinstance(f, DataField) and f.tag == tag:
                values.extend(f.values_by_code(code))
        return values

    @property
    def control_fields(self) -> list[ControlField]:
        """All control fields, in record order."""
        return [f for f in self.fields if isinstance(f, ControlField)]

    @property
    def data_fields(self) -> list[DataField]:
        """All data fields, in record order."""
        return [f for f in self.fields if isinstance(f, DataField)]

    def __getitem__(self, tag: str) -> Field | None:
        return self.get_field(tag)

    def __contains__(self, tag: object) -> bool:
        return any(f.tag == tag for f in self.fields)

    def __iter__(self) -> Iterator[Field]:
        return iter(self.fields)

    # --- Comparison ---

    def _comparable_leader(self) -> bytes:
        raw = bytearray(self.leader.encode("utf-8"))
        raw[RECORD_LENGTH_SLICE] = b"\x00" * 5
        raw[BASE_ADDRESS_SLICE] = b"\x00" * 5
        return bytes(raw)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return (
            self._comparable_leader() == other._comparable_leader()
            and self.fields == other.fields
        )

    # --- Serialization shortcuts ---

    def to_binary(self) -> bytes:
        """Serialize to ISO 2709 bytes."""
        from ..parsing.binary import encode_binary

        return encode_binary(self)

    def to_xml(self, formatted: bool = False, options: XmlOptions | None = None) -> str:
        """Serialize to MARCXML, optionally indented."""
        from ..parsing.xml import encode_xml, encode_xml_formatted

        if formatted:
            return encode_xml_formatted(self, options)
        return encode_xml(self, options)

    def to_breaker(self, options: BreakerOptions | None = None) -> str:
        """Serialize to Breaker text."""
        from ..parsing.breaker import encode_breaker

        return encode_breaker(self, options)

    @classmethod
    def from_binary(cls, data: bytes) -> Record:
        """Decode a record from ISO 2709 bytes."""
        from ..parsing.binary import decode_binary

        return decode_binary(data)

    @classmethod
    def from_xml(cls, text: str | bytes) -> Record:
        """Decode a record from MARCXML."""
        from ..parsing.xml import decode_xml

        return decode_xml(text)

    @classmethod
    def from_breaker(cls, text: str, options: BreakerOptions | None = None) -> Record:
        """Decode a record from Breaker text."""
        from ..parsing.breaker import decode_breaker

        return decode_breaker(text, options)

    def __str__(self) -> str:
        return self.to_breaker()
