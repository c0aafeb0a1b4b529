"""Exception hierarchy.

Two families matter to callers:

- ContractViolation: the host wired something wrong (bad path, bad access
  mode, value plus parent). Raised at creation / property assignment and
  never absorbed.
- NavigationError: the live object graph did not have what a path asked for.
  Returned to direct callers of get/set; during change detection it means
  "no change observed" for that one variable.
"""

from __future__ import annotations


class ChangeTrackerError(Exception):
    """Base class for every error raised by changetracker."""


# ─── Contract violations ─────────────────────────────────────────────────────


class ContractViolation(ChangeTrackerError):
    pass


class PathSyntaxError(ContractViolation, ValueError):
    pass


class InvalidAccess(ContractViolation, ValueError):
    pass


class AccessPathMismatch(ContractViolation, ValueError):
    pass


class InvalidArgument(ContractViolation, ValueError):
    pass


class NestedArrayNotAllowed(ContractViolation, TypeError):
    """Value-JSON arrays are flat: an element encoded to another array."""


# ─── Navigation ──────────────────────────────────────────────────────────────


class NavigationError(ChangeTrackerError):
    pass


class NilNavigation(NavigationError):
    pass


class ParentNotFound(NavigationError):
    pass


class FieldNotFound(NavigationError, AttributeError):
    pass


class NotAccessible(NavigationError):
    pass


class KeyNotFound(NavigationError, KeyError):
    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class KeyTypeMismatch(NavigationError, TypeError):
    pass


class ValueTypeMismatch(NavigationError, TypeError):
    pass


class IndexOutOfRange(NavigationError, IndexError):
    pass


class UnsupportedContainer(NavigationError, TypeError):
    pass


class MethodNotFound(NavigationError, AttributeError):
    pass


class ArityMismatch(NavigationError, TypeError):
    pass


class TypeMismatch(NavigationError, TypeError):
    pass


# ─── Access / codec ──────────────────────────────────────────────────────────


class AccessDenied(ChangeTrackerError):
    """Get on a non-readable variable, or Set on a non-writable one."""


class BadObjectReference(ChangeTrackerError, ValueError):
    pass
