from __future__ import annotations

import base64
import time
from typing import Callable

Clock = Callable[[], float]

DAY_MS = 24 * 3600 * 1000


def now_ms(clock: Clock = time.time) -> int:
    return int(clock() * 1000)


def basic_auth_value(identity: str, secret: str) -> str:
    """Value for the `Authorization` header: `Basic base64(identity:secret)`."""
    token = base64.b64encode(f"{identity}:{secret}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def sanitize_next_path(next_path: str | None, default: str = "/") -> str:
    """
    Prevent open-redirects: allow only relative paths like `/edit/42?tab=1`.
    """
    p = (next_path or "").strip()
    if not p:
        return default
    if not p.startswith("/"):
        return default
    # Disallow scheme-relative: `//evil.com`
    if p.startswith("//"):
        return default
    p = p.replace("\r", "").replace("\n", "")
    return p or default
