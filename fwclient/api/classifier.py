"""
Failed-exchange classification.

Every failed API call is mapped to a navigation decision:

- no response at all            -> NetworkUnavailable, go to /network
- 401/403 (remote auth modes)   -> SessionInvalidated, drop credentials, remember
                                   where the user was, go to /profile?expired=1
- 401/403 in local mode or with the opt-out header -> AuthIgnored, no side effects
- 404/409/418/429/5xx           -> StatusError, go to /error/<status>
- anything else                 -> UnhandledStatus, no side effects

Every redirect first checks where the user already is, so a burst of identical
failures navigates at most once. The caller always gets the original exception.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, replace
from typing import Any, Callable, Literal, Optional

from fwclient.api.headers import SKIP_AUTH_REDIRECT, header_value
from fwclient.auth.config import AuthMode
from fwclient.nav.navigator import (
    ERROR_PATH_PREFIX,
    LOGIN_EXPIRED_PATH,
    LOGIN_PATH,
    NETWORK_PATH,
    Navigator,
    split_path,
)
from fwclient.nav.return_to import ReturnToStore

logger = logging.getLogger(__name__)

DecisionKind = Literal["NetworkUnavailable", "SessionInvalidated", "AuthIgnored", "StatusError", "UnhandledStatus"]

AUTH_STATUSES = frozenset({401, 403})
HANDLED_STATUSES = frozenset({404, 409, 418, 429, 500, 502, 503, 504})

# Paths exempt from the auth redirect even on 401/403.
_WHITELIST_RE = re.compile(r"^/(error|network|profile|register)(/|$)")


def is_whitelisted(path: str) -> bool:
    return bool(_WHITELIST_RE.match(split_path(path)))


@dataclass(frozen=True)
class ErrorDecision:
    kind: DecisionKind
    status: Optional[int] = None
    redirect_to: Optional[str] = None
    invalidate: bool = False
    save_return_to: Optional[str] = None
    navigated: bool = False


def _response_of(exc: BaseException) -> Any:
    return getattr(exc, "response", None)


def _opted_out(exc: BaseException, request: Any) -> bool:
    headers = getattr(request, "headers", None)
    if headers is None:
        headers = getattr(getattr(exc, "request", None), "headers", None)
    return header_value(headers, SKIP_AUTH_REDIRECT) == "1"


class ErrorClassifier:
    def __init__(
        self,
        mode: AuthMode,
        navigator: Navigator,
        *,
        return_to: ReturnToStore,
        on_invalidate: Callable[[], None],
    ) -> None:
        self._mode = mode
        self._navigator = navigator
        self._return_to = return_to
        self._on_invalidate = on_invalidate
        self._lock = threading.Lock()

    def classify(self, exc: BaseException, request: Any = None, *, current_path: Optional[str] = None) -> ErrorDecision:
        """Decide what should happen for `exc`. No side effects."""
        path = current_path if current_path is not None else self._navigator.current_path()
        bare = split_path(path)

        response = _response_of(exc)
        if response is None:
            return ErrorDecision(
                kind="NetworkUnavailable",
                redirect_to=None if bare.startswith(NETWORK_PATH) else NETWORK_PATH,
            )

        status = int(response.status_code)

        if status in AUTH_STATUSES:
            if self._mode == "local" or _opted_out(exc, request):
                return ErrorDecision(kind="AuthIgnored", status=status)
            exempt = is_whitelisted(bare) or bare == LOGIN_PATH
            return ErrorDecision(
                kind="SessionInvalidated",
                status=status,
                invalidate=True,
                redirect_to=None if exempt else LOGIN_EXPIRED_PATH,
                save_return_to=None if exempt else path,
            )

        if status in HANDLED_STATUSES:
            return ErrorDecision(
                kind="StatusError",
                status=status,
                redirect_to=None if bare.startswith(ERROR_PATH_PREFIX) else f"{ERROR_PATH_PREFIX}{status}",
            )

        return ErrorDecision(kind="UnhandledStatus", status=status)

    def handle(self, exc: BaseException, request: Any = None) -> ErrorDecision:
        """Classify and apply side effects (credential drop, return target, redirect)."""
        # Location check and redirect must be atomic across concurrent failures.
        with self._lock:
            decision = self.classify(exc, request)
            if decision.invalidate:
                self._on_invalidate()
            if decision.save_return_to:
                self._return_to.save(decision.save_return_to)
            navigated = False
            if decision.redirect_to:
                navigated = self._navigator.redirect(decision.redirect_to)

        if decision.kind == "NetworkUnavailable":
            logger.warning("API unreachable: %s", exc)
        elif decision.kind == "SessionInvalidated":
            logger.info("Session rejected with %s, credentials dropped", decision.status)
        else:
            logger.debug("Request failed: kind=%s status=%s", decision.kind, decision.status)
        return replace(decision, navigated=navigated)
