"""Data models for MARC records.

This module provides typed Python classes for representing a record,
its control and data fields, and their subfields.
"""

from .field import (
    BLANK_INDICATOR,
    ControlField,
    DataField,
    Field,
    Subfield,
    is_control_tag,
)
from .record import DEFAULT_LEADER, Record

__all__ = [
    "BLANK_INDICATOR",
    "ControlField",
    "DEFAULT_LEADER",
    "DataField",
    "Field",
    "Record",
    "Subfield",
    "is_control_tag",
]
