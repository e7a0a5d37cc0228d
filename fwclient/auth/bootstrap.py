"""
Startup wiring for the session subsystem.

`bootstrap_session` runs once per process. It builds every collaborator from a
single `ClientConfig`, reconciles persisted credentials with the configured
auth mode, and restores the session (if any) without ever failing startup.

Usage::

    from fwclient.auth.bootstrap import bootstrap_session
    from fwclient.auth.storage import FileStorage

    rt = bootstrap_session(load_client_config(), storage=FileStorage("~/.fwclient/storage.json"))
    if rt.session.is_authenticated:
        print(rt.session.profile.name)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from fwclient.api.classifier import ErrorClassifier
from fwclient.api.client import HttpClient
from fwclient.api.headers import AUTHORIZATION
from fwclient.api.interceptor import AuthInterceptor
from fwclient.auth.config import ClientConfig
from fwclient.auth.session import SessionController
from fwclient.auth.storage import CredentialStore, MemoryStorage, Storage
from fwclient.auth.strategies import ModeStrategy, get_mode_strategy
from fwclient.auth.util import Clock, basic_auth_value
from fwclient.nav.navigator import MemoryNavigator, Navigator
from fwclient.nav.return_to import DEFAULT_TARGET, ReturnToStore, resolve_post_login_target

logger = logging.getLogger(__name__)


@dataclass
class SessionRuntime:
    config: ClientConfig
    http: HttpClient
    store: CredentialStore
    return_to: ReturnToStore
    navigator: Navigator
    strategy: ModeStrategy
    classifier: ErrorClassifier
    session: SessionController

    def post_login_target(self, nav_state: Optional[Dict[str, Any]] = None, default: str = DEFAULT_TARGET) -> str:
        """Where to go after a successful login (guard state, then persisted path, then default)."""
        if nav_state is None:
            nav_state = getattr(self.navigator, "state", None)
        return resolve_post_login_target(nav_state, self.return_to, default)


def build_runtime(
    config: ClientConfig,
    *,
    storage: Storage,
    session_storage: Optional[Storage] = None,
    navigator: Optional[Navigator] = None,
    http_session: Optional[requests.Session] = None,
    clock: Clock = time.time,
) -> SessionRuntime:
    """Construct and connect all collaborators. Performs no I/O."""
    store = CredentialStore(storage, clock=clock, retention_days=config.retention_days)
    return_to = ReturnToStore(session_storage if session_storage is not None else MemoryStorage())
    nav = navigator if navigator is not None else MemoryNavigator(base_path=config.base_path)

    http = HttpClient(config, session=http_session)
    strategy = get_mode_strategy(config.auth_mode, store, http, retention_days=config.retention_days)
    session = SessionController(strategy, http)

    classifier = ErrorClassifier(config.auth_mode, nav, return_to=return_to, on_invalidate=session.logout)
    http.add_request_interceptor(AuthInterceptor(store, config.auth_mode))
    http.add_error_handler(classifier.handle)

    return SessionRuntime(
        config=config,
        http=http,
        store=store,
        return_to=return_to,
        navigator=nav,
        strategy=strategy,
        classifier=classifier,
        session=session,
    )


def prime_auth_headers(rt: SessionRuntime) -> None:
    """Set (or clear) the client's default Authorization header from storage."""
    if not rt.config.uses_remote_auth:
        rt.http.remove_default_header(AUTHORIZATION)
        return
    record = rt.store.read("basic")
    if record is None or not record.has_secret:
        return
    rt.http.set_default_header(AUTHORIZATION, basic_auth_value(record.identity, record.secret))


def seed_credentials(rt: SessionRuntime) -> bool:
    """Persist pre-configured credentials when nothing valid is stored yet."""
    cfg = rt.config
    if not cfg.uses_remote_auth or not cfg.has_preseeded_credentials:
        return False
    if rt.store.read("basic") is not None:
        return False
    rt.store.save_basic(cfg.basic_user, cfg.basic_pass)
    logger.info("Seeded credentials from configuration")
    return True


def bootstrap_session(
    config: ClientConfig,
    *,
    storage: Storage,
    session_storage: Optional[Storage] = None,
    navigator: Optional[Navigator] = None,
    http_session: Optional[requests.Session] = None,
    clock: Clock = time.time,
) -> SessionRuntime:
    rt = build_runtime(
        config,
        storage=storage,
        session_storage=session_storage,
        navigator=navigator,
        http_session=http_session,
        clock=clock,
    )
    seed_credentials(rt)
    prime_auth_headers(rt)
    state = rt.session.init()
    logger.info("Session bootstrap complete: mode=%s authenticated=%s", config.auth_mode, state.is_authenticated)
    return rt
