"""Variables — tracked bindings into a live object graph.

A root variable owns its value. A child variable derives its value by
navigating its path from the parent's navigation value (the parent's wrapper
if it has one, else its value). Variables are created and destroyed through
the Tracker; all other mutation goes through the methods here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from changetracker.codec import is_object_ref
from changetracker.errors import AccessDenied, NavigationError, ParentNotFound
from changetracker.path import (
    Access,
    GetterCall,
    PathElement,
    SetterCall,
    format_path,
    parse_access,
    parse_path,
    validate_access_path,
)
from changetracker.priority import Priority, parse_priority, parse_property_name

if TYPE_CHECKING:
    from changetracker.tracker import Tracker

logger = logging.getLogger("changetracker.variable")


class Variable:
    """A tracked variable. Create with Tracker.create_variable()."""

    __slots__ = (
        "id",
        "parent_id",
        "child_ids",
        "active",
        "access",
        "properties",
        "property_priorities",
        "path",
        "value",
        "value_json",
        "value_priority",
        "wrapper_value",
        "wrapper_json",
        "_tracker",
    )

    def __init__(self, tracker: Tracker, var_id: int, parent_id: int = 0) -> None:
        self.id = var_id
        self.parent_id = parent_id
        self.child_ids: list[int] = []
        self.active = True
        self.access = Access.READ_WRITE
        self.properties: dict[str, str] = {}
        self.property_priorities: dict[str, Priority] = {}
        self.path: tuple[PathElement, ...] = ()
        self.value: Any = None
        self.value_json: Any = None
        self.value_priority = Priority.MEDIUM
        self.wrapper_value: Any = None
        self.wrapper_json: Any = None
        self._tracker = tracker

    # --- Access ---

    def is_readable(self) -> bool:
        return self.access.readable

    def is_writable(self) -> bool:
        return self.access.writable

    def is_action(self) -> bool:
        return self.access is Access.ACTION

    # --- Tree ---

    def parent(self) -> Variable | None:
        if self.parent_id == 0:
            return None
        return self._tracker.get_variable(self.parent_id)

    def set_active(self, active: bool) -> None:
        """Include or exclude this variable and its subtree from detection."""
        self.active = active

    def navigation_value(self) -> Any:
        """The value children navigate from: the wrapper if present, else the value."""
        if self.wrapper_value is not None:
            return self.wrapper_value
        return self.value

    # --- Value ---

    def get(self) -> Any:
        """Resolve the current value. Raises AccessDenied unless readable."""
        if not self.is_readable():
            raise AccessDenied(f"cannot get non-readable variable {self.id} (access: {self.access})")
        return self.get_value()

    def get_value(self) -> Any:
        """Resolve the current value without access checks."""
        if self.parent_id == 0:
            return self.value
        return self._navigate(self.path)

    def set(self, value: Any) -> None:
        """Write value through the path (or replace a root's value).

        The cached value and encoding are updated on success, so the write is
        not reported back as a change by the next detection pass.

        An action variable whose path ends in name() goes through
        Resolver.call, which with ReflectiveResolver rejects a method
        annotated "-> None" (ArityMismatch) before invoking it. Leave such
        side-effect methods unannotated, return a value, or override call().
        """
        if not self.is_writable():
            raise AccessDenied(f"cannot set read-only variable {self.id} (access: {self.access})")

        if self.parent_id != 0 and self.path:
            container = self._navigate(self.path[:-1])
            last = self.path[-1]
            resolver = self._tracker.resolver
            if isinstance(last, SetterCall):
                resolver.call_with(container, last.name, value)
            elif isinstance(last, GetterCall):
                if not self.is_action():
                    raise AccessDenied(f"cannot set read-only path {format_path(self.path)!r}")
                resolver.call(container, last.name)
            else:
                resolver.set(container, last, value)

        previous = self.value
        self.value = value
        self.value_json = self._tracker.to_value_json(value)
        self._tracker.release_objects(previous)
        self.update_wrapper()
        self.update_type()

    def _navigate(self, elements: tuple[PathElement, ...]) -> Any:
        parent = self._tracker.get_variable(self.parent_id)
        if parent is None:
            raise ParentNotFound(f"parent variable {self.parent_id} not found")
        resolver = self._tracker.resolver
        current = parent.navigation_value()
        for elem in elements:
            if isinstance(elem, GetterCall):
                current = resolver.call(current, elem.name)
            elif isinstance(elem, SetterCall):
                raise NavigationError(f"cannot read through setter {elem}")
            else:
                current = resolver.get(current, elem)
        return current

    # --- Properties ---

    def get_property(self, name: str) -> str:
        return self.properties.get(name, "")

    def get_property_priority(self, name: str) -> Priority:
        return self.property_priorities.get(name, Priority.MEDIUM)

    def set_property(self, name: str, value: str) -> None:
        """Set a property; an empty value removes it.

        name may carry a priority suffix ("label:high"). Special names:
        path, priority, access and wrapper update the variable as well.
        """
        base, priority = parse_property_name(name)

        # Validate before touching any state.
        if base == "path":
            new_path = parse_path(value)
            validate_access_path(self.access, new_path)
        elif base == "access":
            new_access = parse_access(value) if value else Access.READ_WRITE
            validate_access_path(new_access, self.path)

        if value:
            self.properties[base] = value
            self.property_priorities[base] = priority
        else:
            self.properties.pop(base, None)
            self.property_priorities.pop(base, None)
        self._tracker.record_property_change(self.id, base)

        if base == "path":
            self.path = new_path
        elif base == "access":
            self.access = new_access
        elif base == "priority":
            self.value_priority = parse_priority(value)
        elif base == "wrapper":
            self.update_wrapper()
            self.update_type()

    # --- Wrapper / type ---

    def update_wrapper(self) -> None:
        """Create, reuse, replace or clear the wrapper after value_json changed."""
        old = self.wrapper_value
        new = None
        if self.properties.get("wrapper") and self.value_json is not None:
            new = self._tracker.resolver.create_wrapper(self)

        if new is not None and new is old:
            return  # reused: keep its encoding and registry entry

        if old is not None:
            self._tracker.unregister_object(old)
        if new is None:
            self.wrapper_value = None
            self.wrapper_json = None
            return
        logger.debug("Variable %d: new wrapper %s", self.id, type(new).__name__)
        self.wrapper_value = new
        self.wrapper_json = self._tracker.to_value_json(new)

    def update_type(self) -> None:
        """Infer the type property for object-reference values."""
        encoded, value = self.wrapper_json, self.wrapper_value
        if encoded is None:
            encoded, value = self.value_json, self.value
        if not is_object_ref(encoded):
            return
        typ = self._tracker.resolver.get_type(self, value)
        if typ and typ != self.properties.get("type"):
            self.set_property("type", typ)

    def __repr__(self) -> str:
        path = format_path(self.path)
        return f"Variable(id={self.id}, parent={self.parent_id}, path={path!r}, access={self.access})"
