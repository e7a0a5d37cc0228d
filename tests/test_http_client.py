from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from fwclient.api.client import HttpClient
from fwclient.api.interceptor import AuthInterceptor
from fwclient.auth.config import build_client_config
from fwclient.auth.models import CredentialRecord
from fwclient.auth.storage import CredentialStore, MemoryStorage
from fwclient.auth.util import basic_auth_value


def _client(http_session, mode: str = "basic") -> HttpClient:
    return HttpClient(build_client_config(api_url="http://api.test/", auth_mode=mode), session=http_session)


def test_request_uses_base_url_timeout_and_default_accept(http_session, make_response, sent_headers) -> None:
    http_session.request.return_value = make_response(200, {"ok": True})
    http = _client(http_session)

    assert http.get_json("/articles", params={"page": 2}) == {"ok": True}

    call = http_session.request.call_args
    assert call.args == ("GET", "http://api.test/articles")
    assert call.kwargs["timeout"] == 15.0
    assert call.kwargs["params"] == {"page": 2}
    assert sent_headers()["accept"] == "application/json"


def test_default_headers_are_per_instance(http_session, make_response, sent_headers) -> None:
    http_session.request.return_value = make_response(200, {})
    a = _client(http_session)
    b = _client(http_session)
    a.set_default_header("Authorization", "Basic xyz")

    b.get("/x")
    assert "authorization" not in sent_headers()
    a.get("/x")
    assert sent_headers()["authorization"] == "Basic xyz"


def test_skip_auth_redirect_sets_opt_out_header(http_session, make_response, sent_headers) -> None:
    http_session.request.return_value = make_response(200, {})
    _client(http_session).get("/myProfile", skip_auth_redirect=True)
    assert sent_headers()["x-skip-auth-redirect"] == "1"


def test_error_handlers_run_and_original_exception_propagates(http_session, make_response) -> None:
    http_session.request.return_value = make_response(500, {"detail": "boom"})
    http = _client(http_session)
    seen = []
    http.add_error_handler(lambda exc, req: seen.append((type(exc), req.path)))

    with pytest.raises(requests.HTTPError) as ei:
        http.get("/articles")

    assert ei.value.response.status_code == 500
    assert seen == [(requests.HTTPError, "/articles")]


def test_failing_error_handler_does_not_mask_exception(http_session) -> None:
    http_session.request.side_effect = requests.ConnectionError("refused")
    http = _client(http_session)
    http.add_error_handler(MagicMock(side_effect=RuntimeError("handler bug")))
    second = MagicMock()
    http.add_error_handler(second)

    with pytest.raises(requests.ConnectionError):
        http.get("/articles")
    second.assert_called_once()


def _wired(http_session, clock, mode: str):
    store = CredentialStore(MemoryStorage(), clock=clock)
    http = _client(http_session, mode)
    http.add_request_interceptor(AuthInterceptor(store, mode))
    return http, store


def test_interceptor_attaches_stored_basic_credentials(http_session, make_response, sent_headers, clock) -> None:
    http_session.request.return_value = make_response(200, {})
    http, store = _wired(http_session, clock, "basic")
    store.save_basic("alice", "pw")

    http.get("/articles")
    assert sent_headers()["authorization"] == basic_auth_value("alice", "pw")


def test_interceptor_rereads_store_per_request(http_session, make_response, sent_headers, clock) -> None:
    http_session.request.return_value = make_response(200, {})
    http, store = _wired(http_session, clock, "hybrid")
    store.save_basic("alice", "pw", days=1)
    http.set_default_header("Authorization", basic_auth_value("alice", "pw"))

    http.get("/a")
    assert "authorization" in sent_headers()

    clock.advance(2 * 24 * 3600)
    http.get("/b")
    assert "authorization" not in sent_headers()


def test_local_mode_never_sends_authorization(http_session, make_response, sent_headers, clock) -> None:
    """Local mode must not leak credentials, even stale ones left by another mode."""
    http_session.request.return_value = make_response(200, {})
    http, store = _wired(http_session, clock, "local")
    store.save_basic("alice", "pw")
    http.set_default_header("Authorization", "Basic leftover")

    http.get("/articles", headers={"Authorization": "Basic explicit"})
    assert "authorization" not in sent_headers()


def test_explicit_authorization_is_not_overridden(http_session, make_response, sent_headers, clock) -> None:
    http_session.request.return_value = make_response(200, {})
    http, store = _wired(http_session, clock, "basic")
    store.save_basic("old", "pw")

    http.get("/myProfile", headers={"authorization": basic_auth_value("new", "pw2")})
    assert sent_headers()["authorization"] == basic_auth_value("new", "pw2")


def test_no_record_means_no_header(http_session, make_response, sent_headers, clock) -> None:
    http_session.request.return_value = make_response(200, {})
    http, _ = _wired(http_session, clock, "basic")
    http.get("/articles")
    assert "authorization" not in sent_headers()


def test_record_without_secret_is_not_attached(http_session, make_response, sent_headers, clock) -> None:
    http_session.request.return_value = make_response(200, {})
    store = MagicMock(spec=CredentialStore)
    store.read.return_value = CredentialRecord(identity="alice", expires_at=clock.ms + 1000)
    http = _client(http_session, "basic")
    http.add_request_interceptor(AuthInterceptor(store, "basic"))

    http.get("/articles")
    assert "authorization" not in sent_headers()
    store.read.assert_called_once_with("basic")
