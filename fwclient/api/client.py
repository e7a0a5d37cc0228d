"""
Shared HTTP client.

One `HttpClient` instance is constructed per application session and injected
into everything that talks to the API. It owns the default headers (instance
scoped, never process-global) and runs two hook chains:

- request interceptors, called with the `OutgoingRequest` before it is sent;
- error handlers, called with the exception and the request when the exchange
  fails (transport error or HTTP status >= 400).

Error handlers perform side effects only; the original `requests` exception is
always re-raised to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Optional

import requests

from fwclient.api.headers import ACCEPT, SKIP_AUTH_REDIRECT, HeaderBag
from fwclient.auth.config import ClientConfig

logger = logging.getLogger(__name__)


@dataclass
class OutgoingRequest:
    method: str
    url: str
    path: str
    headers: HeaderBag
    timeout: float
    params: Optional[Dict[str, Any]] = None
    json: Any = None
    data: Any = None
    # Lower-cased names of headers the caller passed for this request only.
    explicit_headers: FrozenSet[str] = field(default_factory=frozenset)

    def has_explicit_header(self, name: str) -> bool:
        return name.lower() in self.explicit_headers


RequestInterceptor = Callable[[OutgoingRequest], None]
ErrorHandler = Callable[[BaseException, OutgoingRequest], Any]


class HttpClient:
    def __init__(self, config: Optional[ClientConfig] = None, *, session: Optional[requests.Session] = None):
        self._session = session if session is not None else requests.Session()
        self._request_interceptors: List[RequestInterceptor] = []
        self._error_handlers: List[ErrorHandler] = []
        self.base_url = ""
        self.timeout = 15.0
        self.default_headers = HeaderBag({ACCEPT: "application/json"})
        if config is not None:
            self.init(config)

    def init(self, config: ClientConfig) -> None:
        """(Re)configure base URL, timeout and default headers."""
        self.base_url = config.api_url.rstrip("/")
        self.timeout = config.timeout_seconds
        self.default_headers = HeaderBag({ACCEPT: "application/json"})
        logger.debug("API base=%s timeout=%ss auth_mode=%s", self.base_url, self.timeout, config.auth_mode)

    def add_request_interceptor(self, fn: RequestInterceptor) -> None:
        self._request_interceptors.append(fn)

    def add_error_handler(self, fn: ErrorHandler) -> None:
        self._error_handlers.append(fn)

    def set_default_header(self, name: str, value: str) -> None:
        self.default_headers.set(name, value)

    def remove_default_header(self, name: str) -> None:
        self.default_headers.delete(name)

    def url_for(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def build_request(
        self,
        method: str,
        path: str,
        *,
        headers: Any = None,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        data: Any = None,
        skip_auth_redirect: bool = False,
        timeout: Optional[float] = None,
    ) -> OutgoingRequest:
        explicit = HeaderBag.wrap(headers)
        merged = self.default_headers.copy()
        merged.update(explicit)
        if skip_auth_redirect:
            merged.set(SKIP_AUTH_REDIRECT, "1")
        return OutgoingRequest(
            method=method.upper(),
            url=self.url_for(path),
            path=path,
            headers=merged,
            timeout=timeout if timeout is not None else self.timeout,
            params=params,
            json=json,
            data=data,
            explicit_headers=frozenset(name.lower() for name, _ in explicit.items()),
        )

    def request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        req = self.build_request(method, path, **kwargs)
        for interceptor in self._request_interceptors:
            interceptor(req)

        try:
            response = self._session.request(
                req.method,
                req.url,
                headers=req.headers.to_dict(),
                params=req.params,
                json=req.json,
                data=req.data,
                timeout=req.timeout,
            )
            response.raise_for_status()
            return response
        except requests.RequestException as exc:
            self._dispatch_error(exc, req)
            raise

    def _dispatch_error(self, exc: requests.RequestException, req: OutgoingRequest) -> None:
        for handler in self._error_handlers:
            try:
                handler(exc, req)
            except Exception:
                logger.exception("Error handler failed for %s %s", req.method, req.path)

    def get(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("PUT", path, **kwargs)

    def patch(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("PATCH", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("DELETE", path, **kwargs)

    def get_json(self, path: str, **kwargs: Any) -> Any:
        return self.get(path, **kwargs).json()
