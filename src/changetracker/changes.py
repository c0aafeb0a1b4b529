"""Change records and the priority sorter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from changetracker.priority import Priority

if TYPE_CHECKING:
    from changetracker.variable import Variable


@dataclass
class Change:
    variable_id: int
    priority: Priority
    value_changed: bool = False
    properties_changed: list[str] = field(default_factory=list)


_ORDER = (Priority.HIGH, Priority.MEDIUM, Priority.LOW)


def sort_changes(
    variables: dict[int, Variable],
    value_changes: set[int],
    property_changes: dict[int, dict[str, None]],
) -> list[Change]:
    """Build the change report: all high records, then medium, then low.

    Per variable, changed properties are grouped by their own priority. A
    value change lands in the bucket of the variable's value priority and
    merges with that bucket's properties into one record.
    """
    buckets: dict[Priority, list[Change]] = {p: [] for p in _ORDER}

    for var_id in sorted(value_changes | property_changes.keys()):
        v = variables.get(var_id)
        if v is None:
            continue

        by_priority: dict[Priority, list[str]] = {p: [] for p in _ORDER}
        for name in property_changes.get(var_id, ()):
            by_priority[v.get_property_priority(name)].append(name)

        value_changed = var_id in value_changes
        for priority in _ORDER:
            props = by_priority[priority]
            has_value = value_changed and v.value_priority == priority
            if props or has_value:
                buckets[priority].append(Change(var_id, priority, has_value, props))

    return [change for priority in _ORDER for change in buckets[priority]]
