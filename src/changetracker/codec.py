"""Value-JSON — the wire-safe form of a tracked value.

Scalars pass through, aggregates become object references {"obj": id}
(registering them on first sight), and lists/tuples become flat lists of
encoded elements. Arrays never nest.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from changetracker.errors import BadObjectReference, NestedArrayNotAllowed
from changetracker.registry import is_registerable

if TYPE_CHECKING:
    from changetracker.tracker import Tracker


def object_ref(obj_id: int) -> dict[str, int]:
    return {"obj": obj_id}


def is_object_ref(value: object) -> bool:
    return (
        isinstance(value, dict)
        and len(value) == 1
        and isinstance(value.get("obj"), int)
        and not isinstance(value["obj"], bool)
    )


def object_ref_id(value: object) -> int | None:
    return value["obj"] if is_object_ref(value) else None


def to_value_json(tracker: Tracker, value: Any) -> Any:
    if value is None:
        return None

    value = tracker.resolver.convert_to_value_json(tracker, value)

    if is_registerable(value):
        return object_ref(tracker.register_object(value))

    if isinstance(value, (list, tuple)):
        result = []
        for i, item in enumerate(value):
            encoded = to_value_json(tracker, item)
            if isinstance(encoded, list):
                raise NestedArrayNotAllowed(
                    f"nested arrays not allowed (element {i} is {type(item).__name__})"
                )
            result.append(encoded)
        return result

    return value


def to_value_json_bytes(tracker: Tracker, value: Any) -> bytes:
    return json.dumps(to_value_json(tracker, value)).encode("utf-8")


def from_value_json_bytes(tracker: Tracker, data: bytes | str) -> Any:
    """Decode Value-JSON, resolving object references to live objects.

    References are resolved at the top level and inside a top-level array.
    """
    result = json.loads(data)
    if isinstance(result, list):
        return [_resolve(tracker, item) for item in result]
    return _resolve(tracker, result)


def _resolve(tracker: Tracker, value: Any) -> Any:
    if not is_object_ref(value):
        return value
    obj = tracker.get_object(value["obj"])
    if obj is None:
        raise BadObjectReference(f"bad object reference: {value['obj']}")
    return obj


def json_equal(a: Any, b: Any) -> bool:
    """Compare two Value-JSON values by canonical encoding.

    Falls back to == for values json cannot encode.
    """
    try:
        return json.dumps(a, sort_keys=True) == json.dumps(b, sort_keys=True)
    except (TypeError, ValueError):
        return a == b
