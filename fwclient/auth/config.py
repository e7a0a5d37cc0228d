from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal, Optional, get_args

logger = logging.getLogger(__name__)

AuthMode = Literal["local", "basic", "hybrid"]

DEFAULT_API_URL = "http://localhost:8000"


@dataclass(frozen=True)
class ClientConfig:
    # Remote API
    api_url: str
    timeout_seconds: float

    # Auth mode is fixed for the lifetime of the process
    auth_mode: AuthMode

    # Pre-seeded credentials for automated environments (optional)
    basic_user: str
    basic_pass: str

    # Application base path used to prefix every navigation target ("" or "/wiki")
    base_path: str

    # Persistence
    retention_days: int
    state_dir: str

    @property
    def has_preseeded_credentials(self) -> bool:
        return bool(self.basic_user and self.basic_pass)

    @property
    def uses_remote_auth(self) -> bool:
        """Basic and hybrid modes send credentials to the server; local never does."""
        return self.auth_mode != "local"


def parse_auth_mode(value: Optional[str]) -> AuthMode:
    raw = (value or "").strip().lower() or "local"
    if raw not in get_args(AuthMode):
        logger.warning("Unknown auth mode %r, falling back to 'local'", raw)
        return "local"
    return raw  # type: ignore[return-value]


def normalize_base_path(value: Optional[str]) -> str:
    """`/wiki/` -> `/wiki`, `/` -> ``."""
    p = (value or "").strip().rstrip("/")
    if p and not p.startswith("/"):
        p = "/" + p
    return p


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def build_client_config(
    *,
    api_url: str = DEFAULT_API_URL,
    auth_mode: str = "local",
    basic_user: str = "",
    basic_pass: str = "",
    base_path: str = "",
    timeout_seconds: float = 15.0,
    retention_days: int = 7,
    state_dir: str = "~/.fwclient",
) -> ClientConfig:
    """Build a config explicitly (tests, embedding) with the same normalization as the env loader."""
    return ClientConfig(
        api_url=(api_url or DEFAULT_API_URL).strip().rstrip("/"),
        timeout_seconds=max(1.0, float(timeout_seconds)),
        auth_mode=parse_auth_mode(auth_mode),
        basic_user=(basic_user or "").strip(),
        basic_pass=basic_pass or "",
        base_path=normalize_base_path(base_path),
        retention_days=max(1, int(retention_days)),
        state_dir=os.path.expanduser(state_dir),
    )


@lru_cache(maxsize=1)
def load_client_config() -> ClientConfig:
    """
    Load client configuration from environment variables.

    Read once per process; tests call `load_client_config.cache_clear()` after
    changing the environment.
    """
    return build_client_config(
        api_url=(os.getenv("FW_API_URL", "") or "").strip() or DEFAULT_API_URL,
        auth_mode=os.getenv("FW_AUTH_MODE", "") or "local",
        basic_user=os.getenv("FW_BASIC_USER", "") or "",
        basic_pass=os.getenv("FW_BASIC_PASS", "") or "",
        base_path=os.getenv("FW_BASE_URL", "") or "",
        timeout_seconds=_env_float("FW_HTTP_TIMEOUT_SECONDS", 15.0),
        retention_days=int(_env_float("FW_AUTH_RETENTION_DAYS", 7)),
        state_dir=(os.getenv("FW_STATE_DIR", "") or "").strip() or "~/.fwclient",
    )
