"""Profile and registration endpoints used by the session subsystem."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fwclient.api.client import HttpClient
from fwclient.api.headers import AUTHORIZATION
from fwclient.auth.models import Profile
from fwclient.auth.util import basic_auth_value

PROFILE_PATH = "/myProfile"
REGISTER_PATH = "/register"


def _profile_from(data: Any) -> Profile:
    if not isinstance(data, dict):
        raise ValueError("Invalid profile payload")
    return Profile.model_validate(data)


def my_profile(http: HttpClient) -> Profile:
    return _profile_from(http.get_json(PROFILE_PATH))


def my_profile_silent(http: HttpClient) -> Profile:
    """Profile fetch that never triggers the auth redirect (background checks)."""
    return _profile_from(http.get_json(PROFILE_PATH, skip_auth_redirect=True))


def my_profile_with_basic(http: HttpClient, identity: str, secret: str) -> Profile:
    """Verify a credential pair by fetching the profile with it."""
    return _profile_from(
        http.get_json(
            PROFILE_PATH,
            headers={AUTHORIZATION: basic_auth_value(identity, secret)},
            skip_auth_redirect=True,
        )
    )


def register_user(
    http: HttpClient,
    *,
    name: str,
    login: str,
    password: str,
    email: Optional[str] = None,
    avatar_url: Optional[str] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"name": name, "login": login, "password": password}
    if email:
        payload["email"] = email
    if avatar_url:
        payload["ava"] = avatar_url
    data = http.post(REGISTER_PATH, json=payload).json()
    return data if isinstance(data, dict) else {}
