"""Invariant checks shared by the record model and every codec.

Each validator accepts ``str`` or ``bytes``. Bytes are decoded strictly as
UTF-8; strings must be encodable as UTF-8 (lone surrogates are rejected).
The validated value is returned as ``str``.

Lengths are measured in UTF-8 bytes, matching the binary wire format:
a tag is always three bytes, an indicator or subfield code one byte and
the leader twenty-four bytes.
"""

from __future__ import annotations

from .exceptions import EncodingError, LengthInvariantError, MissingTagError

TAG_LENGTH = 3
INDICATOR_LENGTH = 1
SUBFIELD_CODE_LENGTH = 1
LEADER_LENGTH = 24


def _to_text(value: str | bytes, component: str) -> str:
    """Return value as a UTF-8 clean string or raise EncodingError."""
    if isinstance(value, (bytes, bytearray)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError(component, f"not valid UTF-8 ({e.reason})") from e
    if not isinstance(value, str):
        raise TypeError(f"{component} must be str or bytes, not {type(value).__name__}")
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError(component, f"not encodable as UTF-8 ({e.reason})") from e
    return value


def byte_length(value: str) -> int:
    """Length of value in UTF-8 bytes."""
    return len(value.encode("utf-8"))


def _check_length(value: str, component: str, expected: int) -> str:
    actual = byte_length(value)
    if actual != expected:
        raise LengthInvariantError(component, value, expected, actual)
    return value


def validate_content(value: str | bytes, component: str = "content") -> str:
    """Validate free text content (control field data, subfield data)."""
    return _to_text(value, component)


def validate_tag(value: str | bytes | None) -> str:
    """Validate a field tag.

    Raises:
        MissingTagError: If the tag is None or empty
        LengthInvariantError: If the tag is not exactly 3 bytes
        EncodingError: If the tag is not valid UTF-8
    """
    if value is None or len(value) == 0:
        raise MissingTagError()
    return _check_length(_to_text(value, "tag"), "tag", TAG_LENGTH)


def validate_indicator(value: str | bytes, position: int = 1) -> str:
    """Validate indicator 1 or 2. A blank indicator is a single space."""
    component = f"ind{position}"
    return _check_length(_to_text(value, component), component, INDICATOR_LENGTH)


def validate_subfield_code(value: str | bytes) -> str:
    """Validate a subfield code."""
    return _check_length(
        _to_text(value, "subfield code"), "subfield code", SUBFIELD_CODE_LENGTH
    )


def validate_leader(value: str | bytes) -> str:
    """Validate a record leader."""
    return _check_length(_to_text(value, "leader"), "leader", LEADER_LENGTH)
