"""Resolvers — how variables navigate into and invoke host objects.

Resolver is the capability a host implements to bind the tracker to its own
object model. ReflectiveResolver is the default: it navigates plain Python
objects through attributes, mapping keys and sequence indices, and invokes
methods by name.

Hosts usually subclass ReflectiveResolver and override only the hooks they
need:

    class AppResolver(ReflectiveResolver):
        def create_wrapper(self, variable):
            if isinstance(variable.value, Person):
                return PersonView(variable.value)
            return None

        def get_type(self, variable, value):
            return type(value).__name__

    tracker = Tracker(resolver=AppResolver())
"""

from __future__ import annotations

import inspect
import typing
import weakref
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from typing import TYPE_CHECKING, Any

from changetracker.errors import (
    ArityMismatch,
    FieldNotFound,
    IndexOutOfRange,
    KeyNotFound,
    KeyTypeMismatch,
    MethodNotFound,
    NilNavigation,
    NotAccessible,
    TypeMismatch,
    UnsupportedContainer,
    ValueTypeMismatch,
)

if TYPE_CHECKING:
    from changetracker.tracker import Tracker
    from changetracker.variable import Variable

_NOT_CONTAINERS = (str, bytes, bytearray, int, float, complex, bool)


class Resolver:
    """Navigation, invocation and serialization hooks used by the tracker."""

    def get(self, obj: Any, element: str | int) -> Any:
        """Look up an attribute, key or index within obj."""
        raise NotImplementedError

    def set(self, obj: Any, element: str | int, value: Any) -> None:
        """Assign an attribute, key or index within obj."""
        raise NotImplementedError

    def call(self, obj: Any, method_name: str) -> Any:
        """Invoke a zero-argument method and return its result."""
        raise NotImplementedError

    def call_with(self, obj: Any, method_name: str, value: Any) -> None:
        """Invoke a one-argument method, ignoring what it returns."""
        raise NotImplementedError

    def create_value(self, variable: Variable, type_tag: str, seed: Any) -> Any:
        """Materialize the value of a variable created with a `create` property."""
        return seed

    def create_wrapper(self, variable: Variable) -> Any:
        """Return a navigation stand-in for variable's value, or None.

        Returning variable.wrapper_value itself keeps the existing wrapper
        (and its registry id) in place.
        """
        return None

    def get_type(self, variable: Variable, value: Any) -> str:
        return ""

    def convert_to_value_json(self, tracker: Tracker, value: Any) -> Any:
        """Pre-transform a domain value before default Value-JSON encoding."""
        return value


class ReflectiveResolver(Resolver):
    """Default resolver built on Python introspection."""

    def get(self, obj, element):
        obj = _deref(obj, "navigate")
        if isinstance(element, bool) or not isinstance(element, (str, int)):
            raise TypeError(f"unsupported path element type: {type(element).__name__}")

        if isinstance(obj, Mapping):
            return _get_key(obj, element)
        if isinstance(element, int):
            return _get_index(obj, element)
        if isinstance(obj, _NOT_CONTAINERS) or isinstance(obj, Sequence):
            raise UnsupportedContainer(
                f"cannot get property {element!r} from {type(obj).__name__}"
            )
        return _get_attr(obj, element)

    def set(self, obj, element, value):
        obj = _deref(obj, "set on")
        if isinstance(element, bool) or not isinstance(element, (str, int)):
            raise TypeError(f"unsupported path element type: {type(element).__name__}")

        if isinstance(obj, Mapping):
            _set_key(obj, element, value)
        elif isinstance(element, int):
            _set_index(obj, element, value)
        elif isinstance(obj, _NOT_CONTAINERS) or isinstance(obj, Sequence):
            raise UnsupportedContainer(
                f"cannot set property {element!r} on {type(obj).__name__}"
            )
        else:
            _set_attr(obj, element, value)

    def call(self, obj, method_name):
        method = _find_method(_deref(obj, "call method on"), method_name)
        sig = _signature(method)
        if sig is not None:
            try:
                sig.bind()
            except TypeError:
                raise ArityMismatch(
                    f"method {method_name!r} requires arguments (use call_with)"
                ) from None
            returns = _resolved_hints(method).get("return", sig.return_annotation)
            if returns in (None, type(None), "None"):
                raise ArityMismatch(f"method {method_name!r} returns no values")
        return method()

    def call_with(self, obj, method_name, value):
        method = _find_method(_deref(obj, "call method on"), method_name)
        sig = _signature(method)
        if sig is not None:
            try:
                sig.bind(value)
            except TypeError:
                raise ArityMismatch(
                    f"method {method_name!r} must take exactly one argument"
                ) from None
            param = next(iter(sig.parameters.values()))
            annotation = _resolved_hints(method).get(param.name, param.annotation)
            if not _assignable(value, annotation):
                raise TypeMismatch(
                    f"argument type mismatch: cannot pass {type(value).__name__} "
                    f"to {_type_name(annotation)}"
                )
        method(value)


# ─── Navigation helpers ──────────────────────────────────────────────────────


def _deref(obj: Any, verb: str) -> Any:
    """Follow weak references (the Python pointer-like wrapper) to their target."""
    while isinstance(obj, weakref.ReferenceType):
        obj = obj()
    if obj is None:
        raise NilNavigation(f"cannot {verb} nil value")
    return obj


def _get_key(obj: Mapping, key: str | int) -> Any:
    try:
        return obj[key]
    except KeyError:
        raise KeyNotFound(f"key {key!r} not found") from None
    except TypeError:
        raise KeyTypeMismatch(f"key {key!r} does not fit {type(obj).__name__}") from None


def _set_key(obj: Mapping, key: str | int, value: Any) -> None:
    if not isinstance(obj, MutableMapping):
        raise NotAccessible(f"{type(obj).__name__} is read-only")
    try:
        hash(key)
    except TypeError:
        raise KeyTypeMismatch(f"key {key!r} does not fit {type(obj).__name__}") from None
    try:
        obj[key] = value
    except (TypeError, ValueError) as e:
        raise ValueTypeMismatch(f"value mismatch for key {key!r}: {e}") from None


def _check_index(obj: Any, index: int) -> None:
    if isinstance(obj, (str, bytes, bytearray)) or not isinstance(obj, Sequence):
        raise UnsupportedContainer(f"cannot index {type(obj).__name__}")
    if index < 0 or index >= len(obj):
        raise IndexOutOfRange(f"index {index} out of bounds (len={len(obj)})")


def _get_index(obj: Any, index: int) -> Any:
    _check_index(obj, index)
    return obj[index]


def _set_index(obj: Any, index: int, value: Any) -> None:
    _check_index(obj, index)
    if not isinstance(obj, MutableSequence):
        raise NotAccessible(f"element at index {index} is not settable")
    obj[index] = value


def _check_name(name: str, kind: str) -> None:
    if name.startswith("_"):
        raise NotAccessible(f"{kind} {name!r} is private")


def _get_attr(obj: Any, name: str) -> Any:
    _check_name(name, "field")
    try:
        value = getattr(obj, name)
    except AttributeError:
        raise FieldNotFound(f"field {name!r} not found") from None
    if inspect.ismethod(value) or inspect.isbuiltin(value):
        raise FieldNotFound(f"field {name!r} not found ({name!r} is a method, use {name}())")
    return value


def _set_attr(obj: Any, name: str, value: Any) -> None:
    _check_name(name, "field")
    if not hasattr(obj, name):
        raise FieldNotFound(f"field {name!r} not found")
    annotation = _resolved_hints(type(obj)).get(name)
    if annotation is not None and not _assignable(value, annotation):
        raise TypeMismatch(
            f"type mismatch: cannot assign {type(value).__name__} to {_type_name(annotation)}"
        )
    try:
        setattr(obj, name, value)
    except AttributeError:
        raise NotAccessible(f"field {name!r} is not settable") from None


def _find_method(obj: Any, name: str) -> Any:
    _check_name(name, "method")
    method = getattr(obj, name, None)
    if method is None or not callable(method):
        raise MethodNotFound(f"method {name!r} not found")
    return method


# ─── Signature / type helpers ────────────────────────────────────────────────


def _signature(fn: Any) -> inspect.Signature | None:
    try:
        return inspect.signature(fn)
    except (TypeError, ValueError):
        return None  # some builtins have no introspectable signature


def _resolved_hints(target: Any) -> dict[str, Any]:
    try:
        return typing.get_type_hints(target)
    except Exception:
        # unresolvable forward references: fall back to no type checking
        return {}


def _assignable(value: Any, annotation: Any) -> bool:
    """Only plain-class annotations are enforced; typing constructs are trusted."""
    if not isinstance(annotation, type) or annotation is inspect.Parameter.empty:
        return True
    # list[str] passes isinstance(..., type) on 3.10 but cannot be an isinstance() target
    if typing.get_origin(annotation) is not None:
        return True
    if annotation is object or isinstance(value, annotation):
        return True
    if annotation is float and isinstance(value, int) and not isinstance(value, bool):
        return True
    if annotation is complex and isinstance(value, (int, float)) and not isinstance(value, bool):
        return True
    return False


def _type_name(annotation: Any) -> str:
    return getattr(annotation, "__name__", repr(annotation))
