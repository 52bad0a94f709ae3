"""Breaker text form: one line per leader or field.

Layout:

    LDR 00000nam a2200000 a 4500
    001 ocm12345
    245 10$aTitle :$bsubtitle

The leader line comes first. A control field line is the tag, a space
and the raw content. A data field line is the tag, a space, both
indicators (a blank indicator is written as a placeholder character,
``#`` by default) and then ``$`` + code + content for each subfield.

``$`` is the subfield marker, so content containing ``$`` only survives a
round trip when ``escape_dollar`` is enabled, which writes it as
``{dollar}``.

Lines are separated by ``\\n``; a single ``\\r`` before it is dropped so
CRLF text reads the same. No other character ends a line, so content
may hold form feeds, ``\\x1c``-``\\x1e``, ``\\x85``, ``\\u2028`` and the like.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..exceptions import MalformedLineError, ValidationError
from ..models import BLANK_INDICATOR, ControlField, DataField, Record, Subfield, is_control_tag
from ..validation import validate_leader, validate_tag

logger = logging.getLogger(__name__)

LEADER_MARKER = "LDR"
SUBFIELD_MARKER = "$"
DOLLAR_ESCAPE = "{dollar}"
DEFAULT_BLANK_PLACEHOLDER = "#"


@dataclass(frozen=True, slots=True)
class BreakerOptions:
    """Settings for Breaker encoding and decoding.

    Attributes:
        blank_indicator: Character written in place of a blank indicator.
            On decode only this character is read as blank; any other
            indicator character, including ``#`` or ``\\`` when not
            configured, is kept as is.
        escape_dollar: Write ``$`` in content as ``{dollar}`` and read
            ``{dollar}`` back as ``$``
    """

    blank_indicator: str = DEFAULT_BLANK_PLACEHOLDER
    escape_dollar: bool = False

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if len(self.blank_indicator) != 1:
            raise ValueError(
                f"blank_indicator must be a single character, got {self.blank_indicator!r}"
            )
        if self.blank_indicator in (SUBFIELD_MARKER, "\n", "\r"):
            raise ValueError(f"blank_indicator cannot be {self.blank_indicator!r}")

    @classmethod
    def default(cls) -> BreakerOptions:
        return cls()


# --- Encoding ---


def encode_breaker(record: Record, options: BreakerOptions | None = None) -> str:
    """Render a record as Breaker text.

    Lines are joined with ``\\n`` and there is no trailing newline.
    """
    options = options or BreakerOptions.default()

    def escape(value: str) -> str:
        if options.escape_dollar:
            return value.replace(SUBFIELD_MARKER, DOLLAR_ESCAPE)
        return value

    def indicator(value: str) -> str:
        return options.blank_indicator if value == BLANK_INDICATOR else value

    lines = [f"{LEADER_MARKER} {record.leader}"]
    for f in record.fields:
        if isinstance(f, ControlField):
            lines.append(f"{f.tag} {escape(f.content)}")
        else:
            subfields = "".join(
                f"{SUBFIELD_MARKER}{sf.code}{escape(sf.content)}" for sf in f.subfields
            )
            lines.append(f"{f.tag} {indicator(f.ind1)}{indicator(f.ind2)}{subfields}")
    return "\n".join(lines)


# --- Decoding ---


class BreakerDecoder:
    """Line-by-line Breaker parser."""

    def __init__(self, options: BreakerOptions | None = None) -> None:
        self._options = options or BreakerOptions.default()

    def decode(self, text: str) -> Record:
        """Parse Breaker text into a record.

        Lines are split on ``\\n`` and one trailing ``\\r`` is removed from
        each. Blank lines are skipped. Each remaining line is decoded on its
        own.

        Raises:
            MalformedLineError: If a line cannot be parsed
            LengthInvariantError: If a tag, indicator, code or leader has
                the wrong length
        """
        record: Record | None = None

        for line_number, line in enumerate(text.split("\n"), start=1):
            if line.endswith("\r"):
                line = line[:-1]
            if not line.strip():
                continue
            try:
                if record is None:
                    record = Record(leader=self._parse_leader_line(line, line_number))
                else:
                    record.fields.append(self._parse_field_line(line, line_number))
            except ValidationError as e:
                e.add_note(f"Breaker line {line_number}: {line!r}")
                raise

        if record is None:
            raise MalformedLineError("no LDR leader line found")

        logger.debug("Decoded Breaker record with %d fields", len(record.fields))
        return record

    def _unescape(self, value: str) -> str:
        if self._options.escape_dollar:
            return value.replace(DOLLAR_ESCAPE, SUBFIELD_MARKER)
        return value

    def _indicator(self, value: str) -> str:
        return BLANK_INDICATOR if value == self._options.blank_indicator else value

    def _parse_leader_line(self, line: str, line_number: int) -> str:
        marker, sep, leader = line.partition(" ")
        if marker != LEADER_MARKER or not sep:
            raise MalformedLineError(
                f"first line must be '{LEADER_MARKER} <leader>', got {line!r}",
                line_number,
            )
        return validate_leader(leader)

    def _parse_field_line(self, line: str, line_number: int) -> ControlField | DataField:
        if len(line) < 3:
            raise MalformedLineError(f"line too short for a tag: {line!r}", line_number)

        tag, _, rest = line.partition(" ")
        if tag == LEADER_MARKER:
            raise MalformedLineError("leader line may only appear first", line_number)
        tag = validate_tag(tag)

        if is_control_tag(tag):
            return ControlField(tag, self._unescape(rest))

        if len(rest) < 2:
            raise MalformedLineError(f"field {tag} is missing its indicators", line_number)

        data_field = DataField(tag, self._indicator(rest[0]), self._indicator(rest[1]))
        body = rest[2:]
        if not body:
            return data_field
        if not body.startswith(SUBFIELD_MARKER):
            raise MalformedLineError(
                f"field {tag} subfield data must start with '{SUBFIELD_MARKER}'",
                line_number,
            )

        for segment in body[1:].split(SUBFIELD_MARKER):
            if not segment:
                raise MalformedLineError(
                    f"field {tag} has an empty subfield", line_number
                )
            data_field.subfields.append(
                Subfield(segment[0], self._unescape(segment[1:]))
            )
        return data_field


def decode_breaker(text: str, options: BreakerOptions | None = None) -> Record:
    """Convenience function to parse Breaker text into a record."""
    return BreakerDecoder(options).decode(text)
