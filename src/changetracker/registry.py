"""Object registry — stable integer ids for aggregate values, without owning them.

Entries hold weak references, so registering a host object never extends its
lifetime. Collected targets are noticed lazily: whichever lookup touches a
dead entry evicts it.

Objects Python cannot weakly reference (plain dict, __slots__ classes without
__weakref__) are held by a strong handle instead and stay registered until
unregister() is called. The tracker unregisters what its variables stop
caching; hosts that register such values directly own their lifecycle.
"""

from __future__ import annotations

import itertools
import logging
import weakref
from typing import Callable

logger = logging.getLogger("changetracker.registry")

_SCALARS = (bool, int, float, complex, str, bytes, bytearray)


def is_registerable(obj: object) -> bool:
    """Aggregates are registerable: not None, not a scalar, not a list/tuple."""
    return obj is not None and not isinstance(obj, _SCALARS + (list, tuple))


class _StrongRef:
    """weakref.ref look-alike for objects that refuse weak references."""

    __slots__ = ("_obj",)

    def __init__(self, obj: object) -> None:
        self._obj = obj

    def __call__(self) -> object:
        return self._obj


def _make_ref(obj: object) -> Callable[[], object]:
    try:
        return weakref.ref(obj)
    except TypeError:
        return _StrongRef(obj)


class ObjectRegistry:
    """Weak identity map: aggregate value <-> assigned id."""

    def __init__(self, new_id: Callable[[], int] | None = None) -> None:
        if new_id is None:
            new_id = itertools.count(1).__next__
        self._new_id = new_id
        self._by_addr: dict[int, tuple[int, Callable[[], object]]] = {}
        self._by_id: dict[int, int] = {}  # obj_id -> id(obj)

    def register(self, obj: object) -> int | None:
        """Return obj's id, assigning a fresh one on first sight.

        None if obj is not registerable.
        """
        if not is_registerable(obj):
            return None
        existing = self.lookup(obj)
        if existing is not None:
            return existing
        obj_id = self._new_id()
        addr = id(obj)
        self._by_addr[addr] = (obj_id, _make_ref(obj))
        self._by_id[obj_id] = addr
        return obj_id

    def unregister(self, obj: object) -> None:
        if not is_registerable(obj):
            return
        entry = self._by_addr.get(id(obj))
        if entry is not None and entry[1]() is obj:
            self._evict(id(obj), entry[0])

    def lookup(self, obj: object) -> int | None:
        if not is_registerable(obj):
            return None
        addr = id(obj)
        entry = self._by_addr.get(addr)
        if entry is None:
            return None
        obj_id, ref = entry
        target = ref()
        if target is obj:
            return obj_id
        # The registered object died and its address was recycled.
        logger.debug("Evicting collected object %d", obj_id)
        self._evict(addr, obj_id)
        return None

    def get(self, obj_id: int) -> object | None:
        addr = self._by_id.get(obj_id)
        if addr is None:
            return None
        target = self._by_addr[addr][1]()
        if target is None:
            logger.debug("Evicting collected object %d", obj_id)
            self._evict(addr, obj_id)
        return target

    def _evict(self, addr: int, obj_id: int) -> None:
        self._by_addr.pop(addr, None)
        self._by_id.pop(obj_id, None)

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, obj: object) -> bool:
        return self.lookup(obj) is not None
