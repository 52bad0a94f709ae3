"""ISO 2709 binary record decoding, encoding and stream framing.

Record layout (MARC21 conventions, fixed entry-map widths 4/5):

1. Leader, 24 bytes
   - bytes 0-4: record length in ASCII decimal, terminator included
   - bytes 12-16: base address of data (end of the directory)
2. Directory, one 12-byte entry per field, then 0x1E
   - 3-byte tag, 4-digit field length, 5-digit start relative to base
3. Field data area, each field ending in 0x1E
   - control fields: raw content
   - data fields: two indicator bytes, then 0x1F + code + content
     for every subfield
4. Record terminator 0x1D
"""

from __future__ import annotations

import io
import logging
from collections.abc import Iterator
from typing import BinaryIO

from ..exceptions import RecordOverflowError, StructuralError
from ..models import ControlField, DataField, Field, Record, Subfield, is_control_tag
from ..validation import (
    LEADER_LENGTH,
    validate_content,
    validate_indicator,
    validate_leader,
    validate_subfield_code,
    validate_tag,
)

logger = logging.getLogger(__name__)

SUBFIELD_DELIMITER = 0x1F
FIELD_TERMINATOR = 0x1E
RECORD_TERMINATOR = 0x1D
RESERVED_CHARACTERS = frozenset(
    chr(b) for b in (SUBFIELD_DELIMITER, FIELD_TERMINATOR, RECORD_TERMINATOR)
)

RECORD_LENGTH_WIDTH = 5
BASE_ADDRESS_WIDTH = 5
FIELD_LENGTH_WIDTH = 4
START_POSITION_WIDTH = 5
DIRECTORY_ENTRY_LENGTH = 3 + FIELD_LENGTH_WIDTH + START_POSITION_WIDTH

# Smallest possible record: leader, directory terminator, record terminator
MIN_RECORD_LENGTH = LEADER_LENGTH + 2
MAX_RECORD_LENGTH = 10**RECORD_LENGTH_WIDTH - 1


def _parse_decimal(raw: bytes, component: str, what: str) -> int:
    """Parse a fixed-width ASCII decimal number."""
    if not raw.isdigit():
        raise StructuralError(f"{what} {raw!r} is not a decimal number", component=component)
    return int(raw)


class BinaryRecordDecoder:
    """Decoder for a single ISO 2709 record."""

    def __init__(self, data: bytes) -> None:
        """Initialize decoder with record bytes.

        Args:
            data: Exactly one record, record terminator included
        """
        self._data = bytes(data)

    def decode(self) -> Record:
        """Decode the record.

        Returns:
            The decoded Record

        Raises:
            StructuralError: If the framing is malformed
            EncodingError: If any extracted text is not valid UTF-8
            LengthInvariantError: If a tag, indicator or code has the wrong length
        """
        data = self._data
        if len(data) < LEADER_LENGTH:
            raise StructuralError(
                f"record is {len(data)} bytes, shorter than the leader",
                component="leader",
            )

        record_length = _parse_decimal(data[0:5], "leader", "record length")
        if len(data) < record_length:
            raise StructuralError(
                f"truncated record: declared {record_length} bytes, got {len(data)}",
                component="leader",
            )
        if len(data) > record_length:
            raise StructuralError(
                f"length mismatch: declared {record_length} bytes, got {len(data)}",
                component="leader",
            )
        if data[-1] != RECORD_TERMINATOR:
            raise StructuralError("missing record terminator", component="record")

        base_address = _parse_decimal(data[12:17], "leader", "base address")
        data_end = record_length - 1
        if not LEADER_LENGTH < base_address <= data_end:
            raise StructuralError(
                f"base address {base_address} outside record of {record_length} bytes",
                component="leader",
            )
        if data[base_address - 1] != FIELD_TERMINATOR:
            raise StructuralError("missing directory terminator", component="directory")

        record = Record(leader=validate_leader(data[:LEADER_LENGTH]))

        directory = data[LEADER_LENGTH : base_address - 1]
        if len(directory) % DIRECTORY_ENTRY_LENGTH:
            raise StructuralError(
                f"length {len(directory)} is not a multiple of {DIRECTORY_ENTRY_LENGTH}",
                component="directory",
            )

        for index in range(len(directory) // DIRECTORY_ENTRY_LENGTH):
            entry = directory[
                index * DIRECTORY_ENTRY_LENGTH : (index + 1) * DIRECTORY_ENTRY_LENGTH
            ]
            tag, length, start = self._parse_directory_entry(index, entry)
            record.fields.append(
                self._decode_field(index, tag, base_address + start, length, data_end)
            )

        logger.debug("Decoded binary record with %d fields", len(record.fields))
        return record

    def _parse_directory_entry(self, index: int, entry: bytes) -> tuple[str, int, int]:
        """Split a directory entry into (tag, length, start)."""
        component = f"directory entry {index}"
        tag = validate_tag(validate_content(entry[0:3], f"{component} tag"))
        length = _parse_decimal(entry[3:7], component, "field length")
        start = _parse_decimal(entry[7:12], component, "starting position")
        return tag, length, start

    def _decode_field(
        self, index: int, tag: str, start: int, length: int, data_end: int
    ) -> Field:
        """Extract and decode one field from the data area."""
        component = f"field {index} ({tag})"
        end = start + length
        if length == 0:
            raise StructuralError("declared length is zero", component=component)
        if end > data_end:
            raise StructuralError(
                f"declared span {start}-{end} runs past the data area ending at {data_end}",
                component=component,
            )

        raw = self._data[start:end]
        if raw[-1] != FIELD_TERMINATOR:
            raise StructuralError(
                f"declared length {length} does not end at a field terminator",
                component=component,
            )
        body = raw[:-1]
        if FIELD_TERMINATOR in body:
            raise StructuralError(
                f"field terminator found before declared length {length}",
                component=component,
            )

        if is_control_tag(tag):
            return ControlField(tag, validate_content(body, f"{component} content"))

        if len(body) < 2:
            raise StructuralError("missing indicators", component=component)

        ind1 = validate_indicator(validate_content(body[0:1], f"{component} ind1"), 1)
        ind2 = validate_indicator(validate_content(body[1:2], f"{component} ind2"), 2)
        data_field = DataField(tag, ind1, ind2)

        payload = body[2:]
        if not payload:
            return data_field
        if payload[0] != SUBFIELD_DELIMITER:
            raise StructuralError(
                "data found before the first subfield delimiter", component=component
            )

        for position, chunk in enumerate(payload[1:].split(bytes([SUBFIELD_DELIMITER]))):
            if not chunk:
                raise StructuralError(
                    f"subfield {position} has no code", component=component
                )
            code = validate_subfield_code(
                validate_content(chunk[:1], f"{component} subfield {position} code")
            )
            content = validate_content(
                chunk[1:], f"{component} subfield {position} content"
            )
            data_field.subfields.append(Subfield(code, content))

        return data_field


class BinaryRecordEncoder:
    """Encoder for ISO 2709 records."""

    def encode(self, record: Record) -> bytes:
        """Encode a record to bytes.

        The leader's record length (bytes 0-4) and base address
        (bytes 12-16) are always recomputed; the rest of the leader is
        copied verbatim.

        Args:
            record: Record to encode

        Returns:
            Complete record bytes, record terminator included

        Raises:
            RecordOverflowError: If a length or offset exceeds its decimal width
            StructuralError: If content contains a delimiter byte
        """
        directory: list[bytes] = []
        chunks: list[bytes] = []
        offset = 0

        for index, field in enumerate(record.fields):
            raw = self._render_field(index, field)
            component = f"field {index} ({field.tag})"
            self._check_width(len(raw), FIELD_LENGTH_WIDTH, f"{component} length")
            self._check_width(offset, START_POSITION_WIDTH, f"{component} start position")
            directory.append(field.tag.encode("utf-8") + b"%04d%05d" % (len(raw), offset))
            chunks.append(raw)
            offset += len(raw)

        base_address = LEADER_LENGTH + DIRECTORY_ENTRY_LENGTH * len(directory) + 1
        record_length = base_address + offset + 1
        self._check_width(base_address, BASE_ADDRESS_WIDTH, "base address")
        self._check_width(record_length, RECORD_LENGTH_WIDTH, "record length")

        leader = self._render_leader(record.leader, record_length, base_address)

        logger.debug(
            "Encoded binary record: %d fields, %d bytes", len(record.fields), record_length
        )
        return b"".join(
            [
                leader,
                *directory,
                bytes([FIELD_TERMINATOR]),
                *chunks,
                bytes([RECORD_TERMINATOR]),
            ]
        )

    def _render_leader(self, leader: str, record_length: int, base_address: int) -> bytes:
        """Write the computed length and base address into the leader bytes.

        Raises:
            StructuralError: If a multi-byte character crosses either
                rewritten range, which would leave the leader undecodable
        """
        raw = bytearray(leader.encode("utf-8"))
        raw[0:5] = b"%05d" % record_length
        raw[12:17] = b"%05d" % base_address
        try:
            raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise StructuralError(
                "multi-byte character overlaps the record length or base address positions",
                component="leader",
            ) from e
        return bytes(raw)

    def _render_field(self, index: int, field: Field) -> bytes:
        """Render one field's data, terminator included."""
        component = f"field {index} ({field.tag})"
        if isinstance(field, ControlField):
            return self._encode_text(field.content, f"{component} content") + bytes(
                [FIELD_TERMINATOR]
            )

        parts = [
            self._encode_text(field.ind1, f"{component} ind1"),
            self._encode_text(field.ind2, f"{component} ind2"),
        ]
        for position, subfield in enumerate(field.subfields):
            parts.append(bytes([SUBFIELD_DELIMITER]))
            parts.append(self._encode_text(subfield.code, f"{component} subfield {position} code"))
            parts.append(
                self._encode_text(subfield.content, f"{component} subfield {position} content")
            )
        parts.append(bytes([FIELD_TERMINATOR]))
        return b"".join(parts)

    def _encode_text(self, value: str, component: str) -> bytes:
        if RESERVED_CHARACTERS.intersection(value):
            raise StructuralError(
                "contains a reserved delimiter character", component=component
            )
        return value.encode("utf-8")

    def _check_width(self, value: int, width: int, component: str) -> None:
        if value >= 10**width:
            raise RecordOverflowError(component, value, width)


class BinaryRecordReader:
    """Pull-based reader of successive records from a byte stream.

    Each record's first five bytes declare its total length; the reader
    uses them to frame the record before decoding it. Iteration stops at
    a clean end of stream. A stream that ends inside a record raises
    StructuralError.

    Example:
        with open("records.mrc", "rb") as f:
            for record in BinaryRecordReader(f):
                print(record.get_field("245"))
    """

    def __init__(self, stream: BinaryIO) -> None:
        """Initialize reader.

        Args:
            stream: Any object with a ``read(n) -> bytes`` method
        """
        self._stream = stream
        self.records_read = 0
        self.offset = 0

    def __iter__(self) -> Iterator[Record]:
        return self

    def __next__(self) -> Record:
        record = self.read_record()
        if record is None:
            raise StopIteration
        return record

    def read_record(self) -> Record | None:
        """Read and decode the next record.

        Returns:
            The next Record, or None at a clean end of stream

        Raises:
            StructuralError: If the stream ends mid-record or framing is bad
        """
        component = f"record {self.records_read}"
        prefix = self._read(RECORD_LENGTH_WIDTH)
        if not prefix:
            logger.debug("End of stream after %d records", self.records_read)
            return None
        if len(prefix) < RECORD_LENGTH_WIDTH:
            raise StructuralError(
                f"stream ended inside the record length ({len(prefix)} bytes)",
                component=component,
            )

        record_length = _parse_decimal(prefix, component, "record length")
        if record_length < MIN_RECORD_LENGTH:
            raise StructuralError(
                f"record length {record_length} is below the minimum {MIN_RECORD_LENGTH}",
                component=component,
            )

        body = self._read(record_length - RECORD_LENGTH_WIDTH)
        if len(body) < record_length - RECORD_LENGTH_WIDTH:
            raise StructuralError(
                f"stream ended after {len(prefix) + len(body)} of {record_length} bytes",
                component=component,
            )

        record = decode_binary(prefix + body)
        self.records_read += 1
        return record

    def _read(self, n: int) -> bytes:
        """Read up to n bytes, retrying short reads until EOF."""
        chunks: list[bytes] = []
        remaining = n
        while remaining > 0:
            chunk = self._stream.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        data = b"".join(chunks)
        self.offset += len(data)
        return data


class BinaryRecordWriter:
    """Writer of encoded records to a byte stream.

    The writer does not own the stream; ``close()`` flushes it and
    rejects further writes.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self._closed = False
        self.records_written = 0

    def write(self, record: Record) -> int:
        """Encode and write one record.

        Returns:
            Number of bytes written
        """
        if self._closed:
            raise ValueError("Writer is closed")
        data = encode_binary(record)
        self._stream.write(data)
        self.records_written += 1
        return len(data)

    def close(self) -> None:
        """Flush the stream and stop accepting records."""
        if not self._closed:
            flush = getattr(self._stream, "flush", None)
            if flush is not None:
                flush()
            self._closed = True

    def __enter__(self) -> BinaryRecordWriter:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()


def decode_binary(data: bytes) -> Record:
    """Convenience function to decode one ISO 2709 record.

    Args:
        data: Record bytes, record terminator included

    Returns:
        Decoded Record
    """
    return BinaryRecordDecoder(data).decode()


def encode_binary(record: Record) -> bytes:
    """Convenience function to encode a record as ISO 2709 bytes."""
    return BinaryRecordEncoder().encode(record)


def next_binary_record(stream: BinaryIO) -> Record | None:
    """Read the next record from a stream.

    Returns:
        The next Record, or None at a clean end of stream
    """
    return BinaryRecordReader(stream).read_record()


def iter_binary_records(source: bytes | BinaryIO) -> Iterator[Record]:
    """Iterate over the records in a byte string or binary stream."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        source = io.BytesIO(bytes(source))
    return BinaryRecordReader(source)
