from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

LOGIN_PATH = "/profile"
LOGIN_EXPIRED_PATH = "/profile?expired=1"
NETWORK_PATH = "/network"
ERROR_PATH_PREFIX = "/error/"


@runtime_checkable
class Navigator(Protocol):
    """Where the user currently is, and how to send them elsewhere."""

    def current_path(self) -> str:
        """App-relative path including the query string (base path stripped)."""
        ...

    def redirect(self, to: str, state: Optional[Dict[str, Any]] = None) -> bool:
        """Navigate to app-relative `to`. Returns False when already there."""
        ...


def split_path(path: str) -> str:
    """Path component only (no query, no fragment)."""
    return path.split("?", 1)[0].split("#", 1)[0] or "/"


def join_base(base_path: str, to: str) -> str:
    path = to if to.startswith("/") else f"/{to}"
    return f"{base_path}{path}"


@dataclass
class NavigationEvent:
    href: str
    state: Optional[Dict[str, Any]] = None


@dataclass
class MemoryNavigator:
    """
    Navigator holding the location in memory.

    Redirect decisions are serialized, so concurrent failures racing to the same
    destination produce a single navigation.
    """

    base_path: str = ""
    start: str = "/"
    history: List[NavigationEvent] = field(default_factory=list)
    state: Optional[Dict[str, Any]] = None
    _href: str = field(default="", init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    def __post_init__(self) -> None:
        self._href = join_base(self.base_path, self.start)

    @property
    def href(self) -> str:
        return self._href

    def current_path(self) -> str:
        with self._lock:
            href = self._href
        if self.base_path and href.startswith(self.base_path):
            href = href[len(self.base_path) :] or "/"
        return href

    def redirect(self, to: str, state: Optional[Dict[str, Any]] = None) -> bool:
        href = join_base(self.base_path, to)
        with self._lock:
            if href == self._href:
                return False
            self._href = href
            self.state = state
            self.history.append(NavigationEvent(href=href, state=state))
        logger.info("Navigating to %s", href)
        return True
