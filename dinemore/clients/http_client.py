"""
clients/http_client.py
----------------------

HTTP client wrapper for the DineMore API.  One ``ApiClient`` exists
per profile and every outbound call goes through it, so each request
uniformly carries the identity headers from the profile's session
store, a JSON body only when there is one, and the profile's cookies.
The cookie jar of the underlying ``httpx.Client`` persists across
calls, which keeps server sessions alive the way a browser includes
credentials.

Requests are sent exactly once.  A non-2xx answer raises
:class:`~dinemore.core.errors.ApiError` with a ``"<status>: <body>"``
message; network failures are logged and propagated unchanged.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Dict, Literal, Optional, Sequence

import httpx

from dinemore.core.config import get_settings
from dinemore.core.errors import ApiError
from dinemore.core.session import SessionStore
from dinemore.logging_config import log_event, log_http_request

UnauthorizedBehavior = Literal["returnNull", "throw"]
QueryFn = Callable[[Sequence[Any]], Any]


def raise_if_not_ok(response: httpx.Response) -> None:
    """Raise :class:`ApiError` for any non-2xx response."""
    if not response.is_success:
        text = response.text or response.reason_phrase
        raise ApiError(response.status_code, text)


class ApiClient:
    """Identity-aware client for one profile.

    Use :meth:`api_request` for mutations and :meth:`get_query_fn` to
    build fetch functions for the query cache.
    """

    def __init__(
        self,
        session_store: SessionStore,
        base_url: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        self.session_store = session_store
        self._client = httpx.Client(
            base_url=base_url or settings.api_base_url,
            timeout=timeout or settings.http_timeout,
            transport=transport,
        )

    def close(self) -> None:
        """Close the underlying HTTPX client and release resources."""
        self._client.close()

    def _send(self, method: str, url: str, *, headers: Dict[str, str],
              content: Optional[str] = None, json_body: Any = None) -> httpx.Response:
        method = method.upper()
        start_time = time.time()
        log_http_request(method, url, headers=headers, json_body=json_body)
        try:
            response = self._client.request(method, url, headers=headers, content=content)
        except httpx.HTTPError as exc:
            log_event(logging.ERROR, "http_error", method=method, url=url, detail=str(exc))
            raise
        duration_ms = (time.time() - start_time) * 1000
        log_http_request(method, url, headers=headers, status=response.status_code, duration_ms=duration_ms)
        return response

    def api_request(self, method: str, url: str, data: Any = None) -> httpx.Response:
        """Send one request and return the response if it is 2xx.

        :param method: HTTP method
        :param url: path relative to the API base URL, or an absolute URL
        :param data: JSON-serialisable body; ``None`` sends no body
        :raises ApiError: on a non-2xx response
        :raises httpx.HTTPError: on transport failures
        """
        headers = dict(self.session_store.get_auth_headers())
        content = None
        if data is not None:
            headers["Content-Type"] = "application/json"
            content = json.dumps(data)
        response = self._send(method, url, headers=headers, content=content, json_body=data)
        raise_if_not_ok(response)
        return response

    def get_query_fn(self, on401: UnauthorizedBehavior) -> QueryFn:
        """Build a fetch function for the query cache.

        The returned callable takes a query key whose segments are joined
        with ``/`` to form the URL, e.g. ``("/api/restaurants", "r1",
        "branches")``.  On 401 it returns ``None`` when ``on401`` is
        ``"returnNull"``; every other non-2xx raises :class:`ApiError`.
        """
        if on401 not in ("returnNull", "throw"):
            raise ValueError(f"unknown on401 behaviour: {on401!r}")

        def query_fn(query_key: Sequence[Any]) -> Any:
            url = "/".join(str(part) for part in query_key)
            response = self._send("GET", url, headers=self.session_store.get_auth_headers())
            if on401 == "returnNull" and response.status_code == 401:
                return None
            raise_if_not_ok(response)
            return response.json()

        return query_fn
