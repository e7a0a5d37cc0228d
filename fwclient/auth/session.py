from __future__ import annotations

import logging
from typing import Optional

import requests

from fwclient.api.client import HttpClient
from fwclient.api.endpoints import my_profile, register_user
from fwclient.auth.errors import AuthenticationFailed
from fwclient.auth.models import Profile, SessionState
from fwclient.auth.strategies import ModeStrategy

logger = logging.getLogger(__name__)

MSG_LOGIN_FAILED = "Login failed"
MSG_REGISTER_FAILED = "Registration failed"


class SessionController:
    """
    Mode-agnostic session facade.

    Holds the in-memory `SessionState` and moves it through idle/loading/
    succeeded/failed as login, init and logout complete.
    """

    def __init__(self, strategy: ModeStrategy, http: HttpClient) -> None:
        self._strategy = strategy
        self._http = http
        self.state = SessionState(mode=strategy.mode)

    @property
    def mode(self) -> str:
        return self._strategy.mode

    @property
    def is_authenticated(self) -> bool:
        return self.state.is_authenticated

    @property
    def profile(self) -> Optional[Profile]:
        return self.state.profile

    def login(self, identity: str, secret: str = "", remember: bool = True) -> Profile:
        """
        Log in with the configured policy.

        On failure the state ends up `failed`, unauthenticated, with a message
        suitable for the user, and AuthenticationFailed is re-raised.
        """
        self.state.status = "loading"
        self.state.error = None
        try:
            profile = self._strategy.login(identity, secret, remember)
        except AuthenticationFailed as e:
            self.state.status = "failed"
            self.state.error = e.message or MSG_LOGIN_FAILED
            self.state.profile = None
            raise
        self.state.status = "succeeded"
        self.state.profile = profile
        logger.debug("Logged in as %s (mode=%s)", profile.name, self.mode)
        return profile

    def init(self) -> SessionState:
        """Restore a persisted session. "No session" is not an error."""
        self.state.status = "loading"
        self.state.error = None
        try:
            profile = self._strategy.init()
        except Exception as e:
            # Startup must never fail because of a stale or unreachable session.
            logger.warning("Session init failed: %s", e)
            profile = None
        if profile is None:
            self.state.status = "idle"
            self.state.profile = None
        else:
            self.state.status = "succeeded"
            self.state.profile = profile
        return self.state

    def logout(self) -> None:
        self._strategy.logout()
        self.state.profile = None
        self.state.status = "idle"
        self.state.error = None

    def set_profile(self, profile: Optional[Profile]) -> None:
        self.state.profile = profile

    def refresh_profile(self) -> Optional[Profile]:
        """
        Re-fetch the profile of the current session (profile page).

        Unlike `init`, this goes through normal error handling: a 401/403 tears
        the session down. Local mode has no server profile and returns the
        in-memory one.
        """
        if self.mode == "local" or not self.state.is_authenticated:
            return self.state.profile
        profile = my_profile(self._http)
        self.state.profile = profile
        return profile

    def register(
        self,
        *,
        name: str,
        login: str,
        password: str,
        email: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> Profile:
        """Create the account remotely, then log in with it."""
        try:
            register_user(self._http, name=name, login=login, password=password, email=email, avatar_url=avatar_url)
        except requests.RequestException as e:
            self.state.status = "failed"
            self.state.error = MSG_REGISTER_FAILED
            raise AuthenticationFailed(MSG_REGISTER_FAILED) from e
        profile = self.login(login, password, remember=True)
        if self.mode == "local":
            # No server profile in local mode; show what the user registered with.
            profile = Profile(id=0, name=name, ava=avatar_url or "")
            self.state.profile = profile
        return profile
