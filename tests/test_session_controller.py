from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from fwclient.auth.errors import AuthenticationFailed
from fwclient.auth.models import Profile
from fwclient.auth.session import SessionController


def _controller(strategy=None) -> SessionController:
    if strategy is None:
        strategy = MagicMock()
        strategy.mode = "basic"
    return SessionController(strategy, MagicMock())


def test_login_success_updates_state() -> None:
    ctrl = _controller()
    ctrl._strategy.login.return_value = Profile(id=2, name="Alice")

    profile = ctrl.login("alice", "pw", remember=False)

    ctrl._strategy.login.assert_called_once_with("alice", "pw", False)
    assert profile.id == 2
    assert ctrl.state.status == "succeeded"
    assert ctrl.is_authenticated is True
    assert ctrl.state.error is None


def test_login_failure_records_message_and_reraises() -> None:
    ctrl = _controller()
    ctrl.set_profile(Profile.placeholder("someone"))
    ctrl._strategy.login.side_effect = AuthenticationFailed("Invalid login or password")

    with pytest.raises(AuthenticationFailed):
        ctrl.login("alice", "bad")

    assert ctrl.state.status == "failed"
    assert ctrl.state.error == "Invalid login or password"
    assert ctrl.is_authenticated is False


def test_init_never_raises() -> None:
    ctrl = _controller()
    ctrl._strategy.init.side_effect = RuntimeError("storage exploded")

    state = ctrl.init()

    assert state.status == "idle"
    assert state.is_authenticated is False


def test_init_restores_profile() -> None:
    ctrl = _controller()
    ctrl._strategy.init.return_value = Profile(id=1, name="Alice")
    assert ctrl.init().status == "succeeded"
    assert ctrl.profile.name == "Alice"


def test_logout_resets_state_and_delegates() -> None:
    ctrl = _controller()
    ctrl.set_profile(Profile.placeholder("alice"))
    ctrl.state.error = "old"

    ctrl.logout()

    ctrl._strategy.logout.assert_called_once_with()
    assert ctrl.state.profile is None
    assert ctrl.state.status == "idle"
    assert ctrl.state.error is None


def test_register_then_login_in_local_mode(make_runtime, http_session, make_response) -> None:
    rt = make_runtime("local")
    http_session.request.return_value = make_response(200, {"ok": True, "created_id": 5})

    profile = rt.session.register(name="Alice Doe", login="alice", password="pw", avatar_url="http://x/a.png")

    body = http_session.request.call_args.kwargs["json"]
    assert body == {"name": "Alice Doe", "login": "alice", "password": "pw", "ava": "http://x/a.png"}
    assert (profile.id, profile.name, profile.avatar_url) == (0, "Alice Doe", "http://x/a.png")
    assert rt.session.is_authenticated is True
    assert rt.store.read("local").identity == "alice"


def test_register_failure(make_runtime, http_session, make_response) -> None:
    rt = make_runtime("basic", start="/register")
    http_session.request.return_value = make_response(409, {"detail": "login taken"})

    with pytest.raises(AuthenticationFailed) as ei:
        rt.session.register(name="A", login="alice", password="pw")

    assert ei.value.message == "Registration failed"
    assert isinstance(ei.value.__cause__, requests.HTTPError)
    assert rt.session.state.status == "failed"
    assert rt.session.is_authenticated is False


def test_refresh_profile_updates_state(make_runtime, http_session, make_response) -> None:
    rt = make_runtime("basic", start="/profile")
    rt.store.save_basic("alice", "pw")
    rt.session.set_profile(Profile(id=1, name="Alice"))
    http_session.request.return_value = make_response(200, {"id": 1, "name": "Alice", "authored": 4})

    profile = rt.session.refresh_profile()

    assert profile.model_extra["authored"] == 4
    assert rt.session.profile is profile


def test_refresh_profile_rejected_tears_session_down(make_runtime, http_session, make_response) -> None:
    rt = make_runtime("hybrid", start="/edit/9")
    rt.store.save_basic("alice", "pw")
    rt.session.set_profile(Profile(id=1, name="Alice"))
    http_session.request.return_value = make_response(401, {"detail": "expired"})

    with pytest.raises(requests.HTTPError):
        rt.session.refresh_profile()

    assert rt.session.is_authenticated is False
    assert rt.store.read("basic") is None
    assert rt.navigator.current_path() == "/profile?expired=1"


def test_refresh_profile_local_mode_stays_offline(make_runtime, http_session) -> None:
    rt = make_runtime("local")
    rt.session.set_profile(Profile.placeholder("alice"))
    assert rt.session.refresh_profile().name == "alice"
    http_session.request.assert_not_called()
