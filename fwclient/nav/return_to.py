"""
Post-login return targets.

Two sources feed the same decision:

1. the protected-route guard, which sends an unauthenticated visitor to the login
   surface with `{"from": <path>}` as in-memory navigation state;
2. the error classifier, which persists the current path in session-scoped
   storage when a 401/403 tears the session down mid-use.

After a successful login the in-memory target wins, then the persisted one
(consumed, so it is never reused), then a fixed default.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlencode

from fwclient.auth.models import SessionState
from fwclient.auth.storage import Storage
from fwclient.auth.util import sanitize_next_path
from fwclient.nav.navigator import LOGIN_PATH, Navigator, split_path

logger = logging.getLogger(__name__)

RETURN_TO_KEY = "return_to"
EXPIRED_PARAM = "expired"
DEFAULT_TARGET = "/"


class ReturnToStore:
    def __init__(self, session_storage: Storage) -> None:
        self._storage = session_storage

    def save(self, path: str) -> None:
        try:
            self._storage.set(RETURN_TO_KEY, path)
        except Exception as e:
            logger.debug("Failed to save return target: %s", e)

    def peek(self) -> Optional[str]:
        try:
            return self._storage.get(RETURN_TO_KEY) or None
        except Exception as e:
            logger.debug("Failed to read return target: %s", e)
            return None

    def consume(self) -> Optional[str]:
        """Read the pending target and delete it."""
        value = self.peek()
        if value:
            try:
                self._storage.remove(RETURN_TO_KEY)
            except Exception as e:
                logger.debug("Failed to clear return target: %s", e)
        return value


def require_auth(state: SessionState, navigator: Navigator, path: Optional[str] = None) -> bool:
    """
    Protected-route guard.

    Returns True when the visitor may proceed. Otherwise redirects to the login
    surface carrying the requested path as in-memory state and returns False.
    """
    if state.is_authenticated:
        return True
    target = path if path is not None else navigator.current_path()
    navigator.redirect(LOGIN_PATH, state={"from": target})
    return False


def resolve_post_login_target(
    nav_state: Optional[Dict[str, Any]],
    store: ReturnToStore,
    default: str = DEFAULT_TARGET,
) -> str:
    from_path = (nav_state or {}).get("from")
    if from_path:
        # Guard redirect is the most specific intent; leave the persisted value alone.
        return sanitize_next_path(str(from_path), default)

    persisted = store.consume()
    if persisted:
        return sanitize_next_path(persisted, default)

    return default


def consume_expired_flag(navigator: Navigator) -> bool:
    """
    Read and strip the `expired=1` marker the classifier puts on the login URL.

    Returns True at most once per marker: the location is replaced with the same
    path minus the flag, keeping the other query parameters and the navigation
    state (the guard's `from` target).
    """
    current = navigator.current_path()
    path = split_path(current)
    if path != LOGIN_PATH or "?" not in current:
        return False
    query = current.split("?", 1)[1].split("#", 1)[0]
    params = parse_qsl(query, keep_blank_values=True)
    if (EXPIRED_PARAM, "1") not in params:
        return False
    rest = [(k, v) for k, v in params if k != EXPIRED_PARAM]
    target = f"{path}?{urlencode(rest)}" if rest else path
    navigator.redirect(target, state=getattr(navigator, "state", None))
    return True
