"""
Auth mode policies.

- local:  identity only, never talks to the server
- basic:  identity + secret verified against the profile endpoint
- hybrid: basic first, degrading to local when verification fails

The policy is chosen once from configuration (`get_mode_strategy`); callers
only ever see the `ModeStrategy` protocol.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, runtime_checkable

import requests

from fwclient.api.client import HttpClient
from fwclient.api.endpoints import my_profile_silent, my_profile_with_basic
from fwclient.api.headers import AUTHORIZATION
from fwclient.auth.config import AuthMode
from fwclient.auth.errors import AuthenticationFailed
from fwclient.auth.models import Profile
from fwclient.auth.storage import CredentialStore
from fwclient.auth.util import basic_auth_value

logger = logging.getLogger(__name__)

MIN_IDENTITY_LENGTH = 3
SHORT_RETENTION_DAYS = 1

MSG_TOO_SHORT = "Login is too short"
MSG_INVALID = "Invalid login or password"


def satisfies_local_rule(identity: str) -> bool:
    return len((identity or "").strip()) >= MIN_IDENTITY_LENGTH


@runtime_checkable
class ModeStrategy(Protocol):
    mode: AuthMode

    def login(self, identity: str, secret: str = "", remember: bool = True) -> Profile:
        """Establish a session. Raises AuthenticationFailed."""
        ...

    def init(self) -> Optional[Profile]:
        """Restore an existing session, or None when there is none. Must not raise."""
        ...

    def logout(self) -> None: ...


def _drop_credentials(store: CredentialStore, http: HttpClient) -> None:
    store.clear()
    http.remove_default_header(AUTHORIZATION)


class LocalStrategy:
    mode: AuthMode = "local"

    def __init__(self, store: CredentialStore, http: HttpClient, *, retention_days: int = 7) -> None:
        self._store = store
        self._http = http
        self._retention_days = retention_days

    def login(self, identity: str, secret: str = "", remember: bool = True) -> Profile:
        name = (identity or "").strip()
        if not satisfies_local_rule(name):
            raise AuthenticationFailed(MSG_TOO_SHORT)
        if remember:
            self._store.save_local(name, days=self._retention_days)
        return Profile.placeholder(name)

    def init(self) -> Optional[Profile]:
        record = self._store.read("local")
        if record is None:
            return None
        return Profile.placeholder(record.identity)

    def logout(self) -> None:
        _drop_credentials(self._store, self._http)


class BasicStrategy:
    mode: AuthMode = "basic"

    def __init__(self, store: CredentialStore, http: HttpClient, *, retention_days: int = 7) -> None:
        self._store = store
        self._http = http
        self._retention_days = retention_days

    def verify(self, identity: str, secret: str) -> Profile:
        """Fetch the profile with the given pair. Persists nothing."""
        name = (identity or "").strip()
        if not name or not secret:
            raise AuthenticationFailed(MSG_INVALID)
        try:
            return my_profile_with_basic(self._http, name, secret)
        except (requests.RequestException, ValueError) as e:
            logger.info("Credential verification failed: %s", type(e).__name__)
            raise AuthenticationFailed(MSG_INVALID) from e

    def remember(self, identity: str, secret: str, days: Optional[float] = None) -> None:
        self._store.save_basic(identity, secret, days=self._retention_days if days is None else days)
        self._http.set_default_header(AUTHORIZATION, basic_auth_value(identity, secret))

    def login(self, identity: str, secret: str = "", remember: bool = True) -> Profile:
        # The pair is always persisted: every later request needs it.
        profile = self.verify(identity, secret)
        self.remember(identity.strip(), secret)
        return profile

    def init(self) -> Optional[Profile]:
        try:
            return my_profile_silent(self._http)
        except (requests.RequestException, ValueError) as e:
            logger.debug("No remote session: %s", type(e).__name__)
            return None

    def logout(self) -> None:
        _drop_credentials(self._store, self._http)


class HybridStrategy:
    mode: AuthMode = "hybrid"

    def __init__(self, store: CredentialStore, http: HttpClient, *, retention_days: int = 7) -> None:
        self._store = store
        self._http = http
        self._retention_days = retention_days
        self._basic = BasicStrategy(store, http, retention_days=retention_days)
        self._local = LocalStrategy(store, http, retention_days=retention_days)

    def _login_local(self, identity: str) -> Profile:
        profile = self._local.login(identity, remember=True)
        # A previous user's pair must not keep riding on requests of this session.
        self._store.remove_basic()
        self._http.remove_default_header(AUTHORIZATION)
        return profile

    def login(self, identity: str, secret: str = "", remember: bool = True) -> Profile:
        if not secret:
            # Nothing to verify remotely.
            return self._login_local(identity)

        try:
            profile = self._basic.verify(identity, secret)
        except AuthenticationFailed:
            if not satisfies_local_rule(identity):
                raise
            logger.info("Remote verification failed, continuing with a local session")
            return self._login_local(identity)

        days = self._retention_days if remember else SHORT_RETENTION_DAYS
        name = identity.strip()
        self._basic.remember(name, secret, days=days)
        self._store.save_local(name, days=days)
        return profile

    def init(self) -> Optional[Profile]:
        profile = self._basic.init()
        if profile is not None:
            return profile
        return self._local.init()

    def logout(self) -> None:
        _drop_credentials(self._store, self._http)


def get_mode_strategy(
    mode: AuthMode, store: CredentialStore, http: HttpClient, *, retention_days: int = 7
) -> ModeStrategy:
    """Seam for selecting the auth policy once at startup."""
    if mode == "basic":
        return BasicStrategy(store, http, retention_days=retention_days)
    if mode == "hybrid":
        return HybridStrategy(store, http, retention_days=retention_days)
    return LocalStrategy(store, http, retention_days=retention_days)
