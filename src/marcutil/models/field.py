"""Field and subfield models for MARC records.

A field is one of two closed variants:

- ``ControlField``: tag plus raw content, no indicators or subfields
- ``DataField``: tag, two single-character indicators and an ordered
  list of ``Subfield`` objects

Every attribute assignment runs through the validators in
``marcutil.validation``, so an instance can never hold a value that
breaks the model invariants.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, SupportsIndex, Union

from ..exceptions import TagRangeError
from ..validation import (
    validate_content,
    validate_indicator,
    validate_subfield_code,
    validate_tag,
)

BLANK_INDICATOR = " "

# Tags 000-009 carry control data
CONTROL_TAG_PREFIX = "00"


def is_control_tag(tag: str) -> bool:
    """Check whether a tag belongs to the control field range (00x)."""
    return tag.startswith(CONTROL_TAG_PREFIX)


def _unchecked(item: Any) -> Any:
    return item


class ValidatedList(list):
    """List that passes every inserted item through a checking function.

    Used for ``Record.fields`` and ``DataField.subfields`` so that items
    added with ``append``, ``insert``, ``extend`` or item assignment are
    held to the same rules as the ``add_*`` methods.
    """

    # Unpickling appends items before the instance dict is restored
    _check: Callable[[Any], Any] = staticmethod(_unchecked)

    def __init__(
        self, items: Iterable[Any] = (), check: Callable[[Any], Any] | None = None
    ) -> None:
        self._check = check or _unchecked
        super().__init__(self._check(item) for item in items)

    def append(self, item: Any) -> None:
        super().append(self._check(item))

    def insert(self, index: SupportsIndex, item: Any) -> None:
        super().insert(index, self._check(item))

    def extend(self, items: Iterable[Any]) -> None:
        super().extend([self._check(item) for item in items])

    def __iadd__(self, items: Iterable[Any]) -> ValidatedList:  # type: ignore[override,misc]
        self.extend(items)
        return self

    def __setitem__(self, index: Any, value: Any) -> None:
        if isinstance(index, slice):
            super().__setitem__(index, [self._check(item) for item in value])
        else:
            super().__setitem__(index, self._check(value))


@dataclass
class Subfield:
    """A coded unit of content within a data field.

    Attributes:
        code: Single-byte subfield code (e.g. "a")
        content: Subfield data
    """

    code: str
    content: str = ""

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "code":
            value = validate_subfield_code(value)
        elif name == "content":
            value = validate_content(value, "subfield content")
        object.__setattr__(self, name, value)

    @property
    def value(self) -> str:
        """Alias for content."""
        return self.content

    @value.setter
    def value(self, value: str) -> None:
        self.content = value

    def __str__(self) -> str:
        return f"${self.code}{self.content}"


@dataclass
class ControlField:
    """A control field (tags 000-009): raw content only.

    Attributes:
        tag: Three-byte field tag
        content: Field data, stored verbatim
    """

    tag: str
    content: str = ""

    is_control_field = True

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "tag":
            value = validate_tag(value)
            if not is_control_tag(value):
                raise TagRangeError(value, "control field")
        elif name == "content":
            value = validate_content(value, f"field {self.tag} content")
        object.__setattr__(self, name, value)

    @property
    def value(self) -> str:
        """Alias for content."""
        return self.content

    @value.setter
    def value(self, value: str) -> None:
        self.content = value

    def __str__(self) -> str:
        return f"{self.tag} {self.content}"


def _coerce_subfield(item: Subfield | tuple[str, str]) -> Subfield:
    if isinstance(item, Subfield):
        return item
    if isinstance(item, tuple) and len(item) == 2:
        return Subfield(*item)
    raise TypeError(f"Expected Subfield or (code, content) pair, got {item!r}")


@dataclass
class DataField:
    """A data field with indicators and subfields.

    Attributes:
        tag: Three-byte field tag
        ind1: First indicator, a single character (" " when blank)
        ind2: Second indicator, a single character (" " when blank)
        subfields: Ordered subfields; order is significant. Items added
            with list methods may be ``Subfield`` or (code, content) pairs
    """

    tag: str
    ind1: str = BLANK_INDICATOR
    ind2: str = BLANK_INDICATOR
    subfields: list[Subfield] = field(default_factory=list)

    is_control_field = False

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "tag":
            value = validate_tag(value)
            if is_control_tag(value):
                raise TagRangeError(value, "data field")
        elif name == "ind1":
            value = validate_indicator(value, 1)
        elif name == "ind2":
            value = validate_indicator(value, 2)
        elif name == "subfields":
            value = ValidatedList(value, _coerce_subfield)
        object.__setattr__(self, name, value)

    # --- Indicators ---

    @property
    def indicators(self) -> tuple[str, str]:
        """Get or set both indicators as a pair."""
        return (self.ind1, self.ind2)

    @indicators.setter
    def indicators(self, value: Iterable[str]) -> None:
        pair = tuple(value)
        if len(pair) != 2:
            raise ValueError("indicators must be a pair of (ind1, ind2)")
        # Validate both before assigning either
        ind1 = validate_indicator(pair[0], 1)
        ind2 = validate_indicator(pair[1], 2)
        self.ind1 = ind1
        self.ind2 = ind2

    # --- Subfield management ---

    def add_subfield(self, code: str, content: str = "") -> Subfield:
        """Create and append a subfield.

        Args:
            code: Subfield code
            content: Subfield data

        Returns:
            The new subfield
        """
        subfield = Subfield(code, content)
        self.subfields.append(subfield)
        return subfield

    def append_subfield(self, subfield: Subfield) -> Subfield:
        """Append an existing subfield."""
        if not isinstance(subfield, Subfield):
            raise TypeError(f"Expected Subfield, got {type(subfield).__name__}")
        self.subfields.append(subfield)
        return subfield

    def remove_subfield(self, subfield: Subfield) -> None:
        """Remove a subfield from this field.

        Raises:
            ValueError: If the subfield does not belong to this field
        """
        for i, candidate in enumerate(self.subfields):
            if candidate is subfield:
                del self.subfields[i]
                return
        raise ValueError("Subfield not in this field")

    def subfields_by_code(self, code: str) -> list[Subfield]:
        """Get all subfields with the given code, in field order.

        The returned objects belong to this field; assigning to their
        ``content`` changes the field.
        """
        return [sf for sf in self.subfields if sf.code == code]

    def subfield_indexes(self, code: str) -> list[int]:
        """Positions in ``subfields`` of every subfield with the given code."""
        return [i for i, sf in enumerate(self.subfields) if sf.code == code]

    def values_by_code(self, code: str) -> list[str]:
        """Get the content of every subfield with the given code."""
        return [sf.content for sf in self.subfields if sf.code == code]

    def get(self, code: str, default: str | None = None) -> str | None:
        """Get the first subfield content for a code, or default."""
        for sf in self.subfields:
            if sf.code == code:
                return sf.content
        return default

    def __getitem__(self, code: str) -> str | None:
        return self.get(code)

    def __contains__(self, code: object) -> bool:
        return any(sf.code == code for sf in self.subfields)

    def __iter__(self) -> Iterator[Subfield]:
        return iter(self.subfields)

    def __str__(self) -> str:
        return f"{self.tag} {self.ind1}{self.ind2}" + "".join(
            str(sf) for sf in self.subfields
        )


Field = Union[ControlField, DataField]
