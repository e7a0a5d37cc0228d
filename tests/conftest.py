"""
Pytest config.

Tests import the local `fwclient/` package from the repo root. When the project
is not pip-installed (or a global `pytest` entrypoint is used) the root isn't
reliably on sys.path during collection, so we pin it here.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable, Iterator, Optional
from unittest.mock import MagicMock


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()

import pytest  # noqa: E402
import requests  # noqa: E402

from fwclient.auth.bootstrap import SessionRuntime, build_runtime  # noqa: E402
from fwclient.auth.config import build_client_config, load_client_config  # noqa: E402
from fwclient.auth.storage import MemoryStorage  # noqa: E402
from fwclient.nav.navigator import MemoryNavigator  # noqa: E402

API_URL = "http://api.test"
NOW = 1_700_000_000.0


class FakeClock:
    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    @property
    def ms(self) -> int:
        return int(self.now * 1000)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Config is read once per process; give each test a clean slate."""
    for name in (
        "FW_API_URL",
        "FW_AUTH_MODE",
        "FW_BASIC_USER",
        "FW_BASIC_PASS",
        "FW_BASE_URL",
        "FW_HTTP_TIMEOUT_SECONDS",
        "FW_AUTH_RETENTION_DAYS",
        "FW_STATE_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    load_client_config.cache_clear()
    yield
    load_client_config.cache_clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_response() -> Callable[..., requests.Response]:
    def _make(status: int = 200, payload: Any = None, url: str = f"{API_URL}/myProfile") -> requests.Response:
        r = requests.Response()
        r.status_code = status
        r.url = url
        r._content = json.dumps(payload).encode("utf-8") if payload is not None else b""
        r.headers["Content-Type"] = "application/json"
        return r

    return _make


@pytest.fixture
def http_session() -> MagicMock:
    """Stand-in for requests.Session; tests set `.request.return_value` / `.side_effect`."""
    return MagicMock(spec=requests.Session)


@pytest.fixture
def sent_headers(http_session: MagicMock) -> Callable[[int], dict]:
    """Headers passed to requests for one call, with lower-cased names."""

    def _get(call_index: int = -1) -> dict:
        call = http_session.request.call_args_list[call_index]
        return {k.lower(): v for k, v in (call.kwargs.get("headers") or {}).items()}

    return _get


@pytest.fixture
def make_runtime(clock: FakeClock, http_session: MagicMock) -> Callable[..., SessionRuntime]:
    def _make(
        mode: str = "basic",
        *,
        start: str = "/",
        storage: Optional[MemoryStorage] = None,
        session_storage: Optional[MemoryStorage] = None,
        base_path: str = "",
        **cfg: Any,
    ) -> SessionRuntime:
        config = build_client_config(api_url=API_URL, auth_mode=mode, base_path=base_path, **cfg)
        return build_runtime(
            config,
            storage=storage if storage is not None else MemoryStorage(),
            session_storage=session_storage if session_storage is not None else MemoryStorage(),
            navigator=MemoryNavigator(base_path=config.base_path, start=start),
            http_session=http_session,
            clock=clock,
        )

    return _make
