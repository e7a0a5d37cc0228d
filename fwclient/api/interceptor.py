from __future__ import annotations

import logging

from fwclient.api.client import OutgoingRequest
from fwclient.api.headers import AUTHORIZATION
from fwclient.auth.config import AuthMode
from fwclient.auth.storage import CredentialStore
from fwclient.auth.util import basic_auth_value

logger = logging.getLogger(__name__)


class AuthInterceptor:
    """
    Attach stored credentials to every outgoing request.

    The stored record is re-read per request, so a logout or an expiry takes
    effect on the very next call. Without a valid record the request goes out
    unauthenticated and the server decides.
    """

    def __init__(self, store: CredentialStore, mode: AuthMode) -> None:
        self._store = store
        self._mode = mode

    def __call__(self, request: OutgoingRequest) -> None:
        if self._mode == "local":
            # Local mode has no server-side auth; never leak a header.
            request.headers.delete(AUTHORIZATION)
            return

        if request.has_explicit_header(AUTHORIZATION):
            # Caller supplied credentials for this call (login verification).
            return

        record = self._store.read("basic")
        if record is None or not record.has_secret:
            # Drop a default header primed from a record that has since expired.
            request.headers.delete(AUTHORIZATION)
            return
        request.headers.set(AUTHORIZATION, basic_auth_value(record.identity, record.secret))
