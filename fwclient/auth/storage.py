"""
Credential persistence.

`CredentialStore` is the only component that writes credential keys. It is
agnostic of the auth mode: callers say which record shape (`basic` or `local`)
they want and the store maps it to storage keys.

Reads never raise. A record that is malformed, incomplete or expired is deleted
from storage and reported as absent.
"""

from __future__ import annotations

import json
import logging
import math
import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable

from fwclient.auth.errors import ExpiredCredential, InvalidCredentialFormat
from fwclient.auth.models import CredentialKind, CredentialRecord
from fwclient.auth.util import DAY_MS, Clock, now_ms

logger = logging.getLogger(__name__)

BASIC_KEY_PRIMARY = "fw_auth"
BASIC_KEY_LEGACY = "fw_auth_basic"  # read/clear only
LOCAL_KEY = "fw_auth_local"

_KEYS_BY_KIND: Dict[str, Tuple[str, ...]] = {
    "basic": (BASIC_KEY_PRIMARY, BASIC_KEY_LEGACY),
    "local": (LOCAL_KEY,),
}
ALL_CREDENTIAL_KEYS: Tuple[str, ...] = (LOCAL_KEY, BASIC_KEY_PRIMARY, BASIC_KEY_LEGACY)


@runtime_checkable
class Storage(Protocol):
    """String key-value storage (durable or session-scoped)."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


@dataclass
class MemoryStorage:
    """In-process storage. Used for session-scoped values and in tests."""

    data: Dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


@dataclass
class FileStorage:
    """Durable storage backed by a single JSON object on disk."""

    path: str = "~/.fwclient/storage.json"
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        """Ensure parent directory exists."""
        self.path = os.path.abspath(os.path.expanduser(self.path))
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

    def _load(self) -> Dict[str, str]:
        p = Path(self.path)
        if not p.exists():
            return {}
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("Corrupt storage file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items() if isinstance(v, str)}

    def _dump(self, data: Dict[str, str]) -> None:
        p = Path(self.path)
        tmp = p.with_suffix(p.suffix + ".tmp")
        tmp.write_text(json.dumps(data, sort_keys=True, indent=2), encoding="utf-8")
        os.replace(tmp, p)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._dump(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._dump(data)


def _parse_exp(value: object) -> int:
    if isinstance(value, bool):
        raise InvalidCredentialFormat("exp must be a number")
    try:
        exp = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise InvalidCredentialFormat("exp must be a number")
    if math.isnan(exp) or math.isinf(exp):
        raise InvalidCredentialFormat("exp must be finite")
    return int(exp)


def decode_record(raw: str, kind: CredentialKind, *, now: int) -> CredentialRecord:
    """
    Parse and validate a stored record.

    Raises:
        InvalidCredentialFormat: not JSON, not an object, or missing/empty required fields
        ExpiredCredential: `exp` is not in the future
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as exc:
        raise InvalidCredentialFormat(f"not JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidCredentialFormat("record is not an object")

    identity = data.get("username")
    if not isinstance(identity, str) or not identity:
        raise InvalidCredentialFormat("missing username")

    secret = data.get("password")
    if kind == "basic":
        if not isinstance(secret, str) or not secret:
            raise InvalidCredentialFormat("missing password")
    else:
        secret = None

    record = CredentialRecord(identity=identity, secret=secret, expires_at=_parse_exp(data.get("exp")))
    if record.is_expired(now):
        raise ExpiredCredential(f"expired at {record.expires_at}")
    return record


class CredentialStore:
    def __init__(self, storage: Storage, *, clock: Clock = time.time, retention_days: int = 7) -> None:
        self._storage = storage
        self._clock = clock
        self.retention_days = retention_days

    def _expiry(self, days: Optional[float]) -> int:
        d = self.retention_days if days is None else days
        return now_ms(self._clock) + int(d * DAY_MS)

    def save(self, record: CredentialRecord, kind: CredentialKind = "basic") -> None:
        key = _KEYS_BY_KIND[kind][0]
        try:
            self._storage.set(key, json.dumps(record.to_json_dict()))
        except Exception as e:
            logger.warning("Failed to persist %s credentials: %s", kind, e)

    def save_basic(self, identity: str, secret: str, days: Optional[float] = None) -> CredentialRecord:
        record = CredentialRecord(identity=identity, secret=secret, expires_at=self._expiry(days))
        self.save(record, "basic")
        return record

    def save_local(self, identity: str, days: Optional[float] = None) -> CredentialRecord:
        record = CredentialRecord(identity=identity, expires_at=self._expiry(days))
        self.save(record, "local")
        return record

    def read(self, kind: CredentialKind) -> Optional[CredentialRecord]:
        """Return the first valid record for `kind`, purging invalid ones on the way."""
        for key in _KEYS_BY_KIND[kind]:
            record = self._read_key(key, kind)
            if record is not None:
                return record
        return None

    def _read_key(self, key: str, kind: CredentialKind) -> Optional[CredentialRecord]:
        try:
            raw = self._storage.get(key)
        except Exception as e:
            logger.debug("Storage read failed for %s: %s", key, e)
            return None
        if not raw:
            return None
        try:
            return decode_record(raw, kind, now=now_ms(self._clock))
        except (InvalidCredentialFormat, ExpiredCredential) as e:
            logger.info("Dropping stored credentials %s: %s", key, e)
            self._remove(key)
            return None

    def _remove(self, key: str) -> None:
        try:
            self._storage.remove(key)
        except Exception as e:
            logger.debug("Storage remove failed for %s: %s", key, e)

    def remove_basic(self) -> None:
        """Drop the secret-bearing records only (primary and legacy keys)."""
        for key in _KEYS_BY_KIND["basic"]:
            self._remove(key)

    def clear(self) -> None:
        for key in ALL_CREDENTIAL_KEYS:
            self._remove(key)
