"""Custom exception hierarchy for marcutil.

All exceptions inherit from MarcError, so callers can catch every
library-specific failure with a single except clause.

Exception Hierarchy:
    MarcError (base)
    ├── ValidationError
    │   ├── EncodingError
    │   ├── LengthInvariantError
    │   ├── MissingTagError
    │   └── TagRangeError
    └── FormatError
        ├── StructuralError
        │   └── RecordOverflowError
        ├── MalformedMarkupError
        └── MalformedLineError

Validation errors are raised by the model whenever a value would break
one of its invariants. Format errors are raised by the codecs when input
cannot be parsed, or when a record cannot be framed in the binary layout.
"""

from __future__ import annotations


class MarcError(Exception):
    """Base exception for all marcutil errors."""


# --- Validation Errors ---


class ValidationError(MarcError, ValueError):
    """A value violates a record model invariant.

    Raised at construction and on every mutation, so an invalid model
    is never observable.
    """


class EncodingError(ValidationError):
    """Content is not valid UTF-8."""

    def __init__(self, component: str, reason: str = "not valid UTF-8") -> None:
        self.component = component
        super().__init__(f"{component}: {reason}")


class LengthInvariantError(ValidationError):
    """A tag, indicator, subfield code or leader has the wrong byte length.

    Attributes:
        component: Name of the offending component (e.g. "tag", "ind1")
        value: The rejected value
        expected: Required byte length
        actual: Byte length of the rejected value
    """

    def __init__(self, component: str, value: str, expected: int, actual: int) -> None:
        self.component = component
        self.value = value
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Invalid {component} {value!r}: expected {expected} byte(s), got {actual}"
        )


class MissingTagError(ValidationError):
    """A field was given no tag."""

    def __init__(self, message: str = "Field has no tag") -> None:
        super().__init__(message)


class TagRangeError(ValidationError):
    """A tag does not match its field kind.

    Control fields take tags 000-009 and data fields every other tag.
    """

    def __init__(self, tag: str, kind: str) -> None:
        self.tag = tag
        self.kind = kind
        super().__init__(f"Tag {tag!r} cannot be used for a {kind}")


# --- Format Errors ---


class FormatError(MarcError):
    """Input does not conform to one of the serialized record formats."""


class StructuralError(FormatError):
    """Malformed ISO 2709 binary record.

    Raised for bad leader or directory numbers, directory/data length
    mismatches, truncated records and missing terminator bytes.

    Attributes:
        component: The part of the record at fault (e.g. "leader",
            "directory entry 3", "field 2")
    """

    def __init__(self, message: str, component: str | None = None) -> None:
        self.component = component
        if component:
            message = f"{component}: {message}"
        super().__init__(message)


class RecordOverflowError(StructuralError, OverflowError):
    """A computed length or offset does not fit its fixed-width decimal slot."""

    def __init__(self, component: str, value: int, width: int) -> None:
        self.value = value
        self.width = width
        super().__init__(
            f"value {value} exceeds {width}-digit field capacity",
            component=component,
        )


class MalformedMarkupError(FormatError):
    """MARCXML document is ill-formed or lacks a required element or attribute."""

    def __init__(self, message: str = "Invalid MARCXML structure") -> None:
        super().__init__(message)


class MalformedLineError(FormatError):
    """A Breaker line cannot be parsed.

    Attributes:
        line_number: 1-based line number within the decoded text, if known
    """

    def __init__(self, message: str, line_number: int | None = None) -> None:
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
