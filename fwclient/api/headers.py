"""
Header container abstraction.

Headers reach the interceptor and the classifier in several shapes: a plain dict
with arbitrary key case, `requests`' `CaseInsensitiveDict`, a list of pairs, an
object exposing `get`/`items`, or nothing at all. `HeaderBag` normalizes all of
them behind case-insensitive `get`/`set`/`delete`.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Mapping, Optional

from requests.structures import CaseInsensitiveDict

AUTHORIZATION = "Authorization"
ACCEPT = "Accept"
# Per-request opt-out from auth-redirect handling (silent/background checks).
SKIP_AUTH_REDIRECT = "X-Skip-Auth-Redirect"


def _iter_pairs(source: Any) -> Iterator[tuple]:
    if source is None:
        return
    if isinstance(source, Mapping):
        yield from source.items()
        return
    to_dict = getattr(source, "to_dict", None) or getattr(source, "toJSON", None)
    if callable(to_dict):
        yield from dict(to_dict()).items()
        return
    items = getattr(source, "items", None)
    if callable(items):
        yield from items()
        return
    # list/tuple of (name, value) pairs
    for pair in source:
        name, value = pair
        yield name, value


class HeaderBag:
    def __init__(self, source: Any = None) -> None:
        self._headers: CaseInsensitiveDict = CaseInsensitiveDict()
        for name, value in _iter_pairs(source):
            if value is None:
                continue
            self._headers[str(name)] = str(value)

    @classmethod
    def wrap(cls, source: Any) -> "HeaderBag":
        if isinstance(source, HeaderBag):
            return source
        return cls(source)

    def get(self, name: str) -> Optional[str]:
        return self._headers.get(name)

    def set(self, name: str, value: str) -> None:
        self._headers[name] = str(value)

    def delete(self, name: str) -> None:
        self._headers.pop(name, None)

    def has(self, name: str) -> bool:
        return name in self._headers

    def update(self, other: Any) -> None:
        for name, value in HeaderBag.wrap(other).items():
            self._headers[name] = value

    def items(self) -> Iterator[tuple]:
        return iter(self._headers.items())

    def copy(self) -> "HeaderBag":
        return HeaderBag(self._headers)

    def to_dict(self) -> Dict[str, str]:
        return dict(self._headers.items())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name in self._headers

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        redacted = {k: ("***" if k.lower() == "authorization" else v) for k, v in self._headers.items()}
        return f"HeaderBag({redacted!r})"


def header_value(headers: Any, name: str) -> Optional[str]:
    """Case-insensitive lookup on any supported header shape."""
    if headers is None:
        return None
    return HeaderBag.wrap(headers).get(name)
