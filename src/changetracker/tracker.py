"""Tracker — the variable forest, the object registry and change detection.

Usage:
    tracker = Tracker()
    person = Person(name="Alice", age=30)
    root = tracker.create_variable(person)
    age = tracker.create_variable(parent_id=root.id, path="age")

    person.age = 31
    tracker.detect_changes()    # True
    tracker.get_changes()       # [Change(variable_id=age.id, ..., value_changed=True)]

Single-threaded: the host serializes all access to one Tracker.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Mapping

from changetracker import codec
from changetracker.changes import Change, sort_changes
from changetracker.errors import InvalidArgument, NavigationError
from changetracker.path import (
    Access,
    parse_access,
    parse_path,
    split_query,
    validate_access_path,
)
from changetracker.priority import parse_priority
from changetracker.registry import ObjectRegistry, is_registerable
from changetracker.resolver import ReflectiveResolver, Resolver
from changetracker.variable import Variable

logger = logging.getLogger("changetracker.tracker")


class Tracker:
    """Holds variables by id, the root set, pending changes and the registry."""

    def __init__(self, resolver: Resolver | None = None) -> None:
        self.resolver: Resolver = resolver if resolver is not None else ReflectiveResolver()
        self._variables: dict[int, Variable] = {}
        self._root_ids: dict[int, None] = {}  # insertion-ordered set
        self._value_changes: set[int] = set()
        self._property_changes: dict[int, dict[str, None]] = {}
        # Variables and registered objects share one id space.
        self._new_id = itertools.count(1).__next__
        self._registry = ObjectRegistry(self._new_id)

    # --- Lifecycle ---

    def create_variable(
        self,
        value: Any = None,
        parent_id: int = 0,
        path: str = "",
        properties: Mapping[str, str] | None = None,
    ) -> Variable:
        """Create a root variable bound to value, or a child bound to parent_id + path.

        path may carry a query suffix ("count?priority=high&access=r") whose
        entries override those in properties.
        """
        if parent_id != 0:
            if value is not None:
                raise InvalidArgument(
                    "cannot provide both parent_id and value; "
                    "child variables derive their value from the parent via path"
                )
            if parent_id not in self._variables:
                raise InvalidArgument(f"parent variable {parent_id} not found")

        props = dict(properties) if properties else {}
        path_part, query = split_query(path or "")
        if not path_part:
            path_part = props.get("path", "")
        props.update(query)

        elements = parse_path(path_part)
        access = parse_access(props["access"]) if "access" in props else Access.READ_WRITE
        validate_access_path(access, elements)

        v = Variable(self, self._new_id(), parent_id)
        v.properties = props
        if path_part:
            props["path"] = path_part
        v.path = elements
        v.access = access
        if "priority" in props:
            v.value_priority = parse_priority(props["priority"])

        had_type = bool(props.get("type"))

        if parent_id == 0:
            v.value = value
        elif not v.is_action():
            # Action paths may invoke side-effecting methods: never resolve eagerly.
            try:
                v.value = v.get_value()
            except NavigationError as e:
                logger.debug("Variable %d: initial value unresolved: %s", v.id, e)

        if "create" in props:
            created = self.resolver.create_value(v, props["create"], value)
            if created is not None:
                v.set_property("type", props["create"])
                v.value = created

        if v.is_readable():
            v.value_json = self.to_value_json(v.value)
        v.update_wrapper()
        v.update_type()

        if v.properties.get("type") and not had_type:
            self.record_property_change(v.id, "type")

        if parent_id == 0:
            self._root_ids[v.id] = None
        else:
            self._variables[parent_id].child_ids.append(v.id)
        self._variables[v.id] = v
        logger.debug("Created %r", v)
        return v

    def destroy_variable(self, var_id: int) -> None:
        """Remove a variable. Its children are left in place. Unknown ids are ignored."""
        v = self._variables.get(var_id)
        if v is None:
            return

        if v.parent_id == 0:
            self._root_ids.pop(var_id, None)
        else:
            parent = self._variables.get(v.parent_id)
            if parent is not None and var_id in parent.child_ids:
                parent.child_ids.remove(var_id)

        self._value_changes.discard(var_id)
        self._property_changes.pop(var_id, None)
        del self._variables[var_id]
        self.release_objects(v.wrapper_value, v.value)
        logger.debug("Destroyed variable %d", var_id)

    # --- Lookup ---

    def get_variable(self, var_id: int) -> Variable | None:
        return self._variables.get(var_id)

    def variables(self) -> list[Variable]:
        return list(self._variables.values())

    def root_variables(self) -> list[Variable]:
        return [self._variables[i] for i in self._root_ids if i in self._variables]

    def children(self, parent_id: int) -> list[Variable]:
        parent = self._variables.get(parent_id)
        if parent is None:
            return []
        return [self._variables[i] for i in parent.child_ids if i in self._variables]

    # --- Change detection ---

    def detect_changes(self) -> bool:
        """Walk every root depth-first and record value changes.

        Returns whether anything changed. Pending state is kept until
        get_changes().
        """
        changed = False
        for root_id in list(self._root_ids):
            changed = self._check_variable(root_id) or changed
        return changed

    def _check_variable(self, var_id: int) -> bool:
        v = self._variables.get(var_id)
        if v is None or not v.active:
            return False

        changed = False
        if v.is_readable():
            try:
                current = v.get_value()
            except NavigationError as e:
                logger.debug("Variable %d: unresolved, treated as unchanged: %s", var_id, e)
            else:
                current_json = self.to_value_json(current)
                if not codec.json_equal(v.value_json, current_json):
                    changed = True
                    self._value_changes.add(var_id)
                    previous = v.value
                    v.value = current
                    v.value_json = current_json
                    self.release_objects(previous)
                    v.update_wrapper()
                    v.update_type()

        for child_id in list(v.child_ids):
            changed = self._check_variable(child_id) or changed
        return changed

    def get_changes(self) -> list[Change]:
        """Return pending changes sorted high -> medium -> low, and clear them."""
        result = sort_changes(self._variables, self._value_changes, self._property_changes)
        self._value_changes = set()
        self._property_changes = {}
        return result

    def record_property_change(self, var_id: int, name: str) -> None:
        self._property_changes.setdefault(var_id, {})[name] = None

    def change_all(self, var_id: int) -> None:
        """Mark the value and every property of a variable as changed."""
        v = self._variables.get(var_id)
        if v is None:
            return
        self._value_changes.add(var_id)
        for name in v.properties:
            self.record_property_change(var_id, name)

    # --- Object registry ---

    def register_object(self, obj: Any) -> int | None:
        return self._registry.register(obj)

    def unregister_object(self, obj: Any) -> None:
        self._registry.unregister(obj)

    def release_objects(self, *values: Any) -> None:
        """Unregister the objects cached by replaced values.

        An object stays registered while any live variable still holds it as
        its value, wrapper or an element of a sequence value. Objects that
        refuse weak references are only ever freed this way.
        """
        stale = {id(obj): obj for value in values for obj in _cached_objects(value)}
        if not stale:
            return
        for v in self._variables.values():
            for held in (v.value, v.wrapper_value):
                for obj in _cached_objects(held):
                    if stale.get(id(obj)) is obj:
                        del stale[id(obj)]
            if not stale:
                return
        for obj in stale.values():
            self.unregister_object(obj)

    def lookup_object(self, obj: Any) -> int | None:
        return self._registry.lookup(obj)

    def get_object(self, obj_id: int) -> Any:
        return self._registry.get(obj_id)

    # --- Value-JSON ---

    def to_value_json(self, value: Any) -> Any:
        return codec.to_value_json(self, value)

    def to_value_json_bytes(self, value: Any) -> bytes:
        return codec.to_value_json_bytes(self, value)

    def from_value_json_bytes(self, data: bytes | str) -> Any:
        return codec.from_value_json_bytes(self, data)


def _cached_objects(value: Any) -> list[Any]:
    if is_registerable(value):
        return [value]
    if isinstance(value, (list, tuple)):
        return [item for item in value if is_registerable(item)]
    return []
