"""Path language — dot-separated navigation paths with call syntax.

    "Address.City"          attribute / key, then attribute / key
    "Tags.0"                index into a sequence
    "GetName()"             zero-argument getter call
    "SetName(_)"            one-argument setter call (terminal only)
    "Count?priority=high"   query suffix, consumed as properties at creation

Access modes and which path terminals they accept:

    | Mode       | Get | Set | Detected | Initial value | Terminal ()  | Terminal (_) |
    |------------|-----|-----|----------|---------------|--------------|--------------|
    | read-write | OK  | OK  | yes      | computed      | rejected     | rejected     |
    | read       | OK  | Err | yes      | computed      | OK           | rejected     |
    | write      | Err | OK  | no       | computed      | rejected     | OK           |
    | action     | Err | OK  | no       | skipped       | OK           | OK           |
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from changetracker.errors import AccessPathMismatch, InvalidAccess, PathSyntaxError


@dataclass(frozen=True)
class GetterCall:
    name: str

    def __str__(self) -> str:
        return f"{self.name}()"


@dataclass(frozen=True)
class SetterCall:
    name: str

    def __str__(self) -> str:
        return f"{self.name}(_)"


PathElement = Union[str, int, GetterCall, SetterCall]


class Access(str, Enum):
    READ = "read"
    WRITE = "write"
    READ_WRITE = "read-write"
    ACTION = "action"

    def __str__(self) -> str:
        return self.value

    @property
    def readable(self) -> bool:
        return self in (Access.READ, Access.READ_WRITE)

    @property
    def writable(self) -> bool:
        return self is not Access.READ


_ACCESS_ALIASES = {"r": Access.READ, "w": Access.WRITE, "rw": Access.READ_WRITE}


def parse_access(text: str) -> Access:
    """Canonical name or short alias (r / w / rw) -> Access."""
    if text in _ACCESS_ALIASES:
        return _ACCESS_ALIASES[text]
    try:
        return Access(text)
    except ValueError:
        raise InvalidAccess(
            f"invalid access value {text!r} (must be read, write, read-write or action)"
        ) from None


def split_query(path: str) -> tuple[str, dict[str, str]]:
    """Split "a.b?width=1&height=2" into ("a.b", {"width": "1", "height": "2"})."""
    path_part, sep, query = path.partition("?")
    props: dict[str, str] = {}
    if not sep:
        return path_part, props
    for pair in query.split("&"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        props[key] = value
    return path_part, props


def _is_index(token: str) -> bool:
    if not token or not token.isascii() or not token.isdigit():
        return False
    return token == "0" or token[0] != "0"


def parse_element(token: str) -> PathElement:
    if _is_index(token):
        return int(token)
    if token.endswith("(_)") and len(token) > 3:
        return SetterCall(token[:-3])
    if token.endswith("()") and len(token) > 2:
        return GetterCall(token[:-2])
    return token


def parse_path(path: str) -> tuple[PathElement, ...]:
    """Parse and validate a path (without query). Empty path -> ()."""
    if not path:
        return ()
    tokens = path.split(".")
    if any(not token for token in tokens):
        raise PathSyntaxError(f"empty element in path {path!r}")
    elements = tuple(parse_element(token) for token in tokens)
    validate_path(elements)
    return elements


def validate_path(elements: tuple[PathElement, ...]) -> None:
    """A setter call may only be the last element."""
    for i, elem in enumerate(elements):
        if isinstance(elem, SetterCall) and i != len(elements) - 1:
            raise PathSyntaxError(f"setter call {elem} must be at end of path")


def validate_access_path(access: Access, elements: tuple[PathElement, ...]) -> None:
    """Check the access mode against the path's terminal element."""
    if not elements:
        return
    last = elements[-1]
    if isinstance(last, GetterCall) and access in (Access.WRITE, Access.READ_WRITE):
        raise AccessPathMismatch(
            f"path ending in {last} requires access read or action, not {access}"
        )
    if isinstance(last, SetterCall) and access in (Access.READ, Access.READ_WRITE):
        raise AccessPathMismatch(
            f"path ending in {last} requires access write or action, not {access}"
        )


def format_path(elements: tuple[PathElement, ...]) -> str:
    return ".".join(str(elem) for elem in elements)
