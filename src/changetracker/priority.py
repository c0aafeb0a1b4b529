"""Priority levels for value and property changes."""

from __future__ import annotations

from enum import IntEnum


class Priority(IntEnum):
    LOW = -1
    MEDIUM = 0
    HIGH = 1

    def __str__(self) -> str:
        return self.name.lower()


def parse_priority(text: str) -> Priority:
    """'low' / 'high' (any case) map to their level; anything else is MEDIUM."""
    text = text.lower()
    if text == "low":
        return Priority.LOW
    if text == "high":
        return Priority.HIGH
    return Priority.MEDIUM


def parse_property_name(name: str) -> tuple[str, Priority]:
    """Split an optional priority suffix off a property name.

    "label:high" -> ("label", Priority.HIGH). An unrecognized suffix is part
    of the name: "a:b" -> ("a:b", Priority.MEDIUM).
    """
    base, sep, suffix = name.rpartition(":")
    if sep and suffix.lower() in ("low", "medium", "high"):
        return base, parse_priority(suffix)
    return name, Priority.MEDIUM
