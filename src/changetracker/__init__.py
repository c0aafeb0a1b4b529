"""changetracker: detect changes in live Python objects through tracked variables."""

from importlib.metadata import version as _version

__version__ = _version("changetracker")

from changetracker.changes import Change
from changetracker.codec import is_object_ref, json_equal, object_ref, object_ref_id
from changetracker.errors import (
    AccessDenied,
    AccessPathMismatch,
    ArityMismatch,
    BadObjectReference,
    ChangeTrackerError,
    ContractViolation,
    FieldNotFound,
    IndexOutOfRange,
    InvalidAccess,
    InvalidArgument,
    KeyNotFound,
    KeyTypeMismatch,
    MethodNotFound,
    NavigationError,
    NestedArrayNotAllowed,
    NilNavigation,
    NotAccessible,
    ParentNotFound,
    PathSyntaxError,
    TypeMismatch,
    UnsupportedContainer,
    ValueTypeMismatch,
)
from changetracker.path import Access, GetterCall, SetterCall, parse_path, split_query
from changetracker.priority import Priority, parse_priority, parse_property_name
from changetracker.registry import ObjectRegistry
from changetracker.resolver import ReflectiveResolver, Resolver
from changetracker.tracker import Tracker
from changetracker.variable import Variable
# textual NOT auto-imported: opt-in only

__all__ = [
    "Tracker",
    "Variable",
    "Change",
    "Priority",
    "parse_priority",
    "parse_property_name",
    "Access",
    "GetterCall",
    "SetterCall",
    "parse_path",
    "split_query",
    "Resolver",
    "ReflectiveResolver",
    "ObjectRegistry",
    "object_ref",
    "is_object_ref",
    "object_ref_id",
    "json_equal",
    "ChangeTrackerError",
    "ContractViolation",
    "PathSyntaxError",
    "InvalidAccess",
    "AccessPathMismatch",
    "InvalidArgument",
    "NestedArrayNotAllowed",
    "NavigationError",
    "NilNavigation",
    "ParentNotFound",
    "FieldNotFound",
    "NotAccessible",
    "KeyNotFound",
    "KeyTypeMismatch",
    "ValueTypeMismatch",
    "IndexOutOfRange",
    "UnsupportedContainer",
    "MethodNotFound",
    "ArityMismatch",
    "TypeMismatch",
    "AccessDenied",
    "BadObjectReference",
]
