"""WSGI middleware that tracks every request with a stats client."""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional

from .bucket import Request
from .client_base import Client, WSGIApp
from .context import with_client
from .timer import DurationTimer

_END = object()
_BAD_REQUEST = 400


class _TrackedResponse:
    """Response body that keeps the stats client current and reports on close."""

    def __init__(self, body: Iterable[bytes], client: Client, on_close: Callable[[], None]) -> None:
        self._body = body
        self._client = client
        self._on_close = on_close
        self._iterator: Optional[Iterator[bytes]] = None
        self._closed = False

    def __iter__(self) -> "_TrackedResponse":
        return self

    def __next__(self) -> bytes:
        with with_client(self._client):
            if self._iterator is None:
                self._iterator = iter(self._body)
            chunk = next(self._iterator, _END)
        if chunk is _END:
            raise StopIteration
        return chunk  # type: ignore[return-value]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            close = getattr(self._body, "close", None)
            if close is not None:
                close()
        finally:
            self._on_close()


class StatsMiddleware:
    """Wraps a WSGI application and tracks each request once its response is closed."""

    def __init__(self, app: WSGIApp, client: Client) -> None:
        self.app = app
        self.client = client

    def __call__(
        self, environ: Mapping[str, Any], start_response: Callable[..., Any]
    ) -> _TrackedResponse:
        request = Request.from_environ(environ)
        started = time.perf_counter()
        status_code = 200

        def capture(status: str, headers: list, exc_info: Any = None) -> Any:
            nonlocal status_code
            status_code = int(status.split(" ", 1)[0])
            if exc_info is not None:
                return start_response(status, headers, exc_info)
            return start_response(status, headers)

        with with_client(self.client):
            body = self.app(environ, capture)

        def finish() -> None:
            elapsed = timedelta(seconds=time.perf_counter() - started)
            self.client.track_request(
                request, DurationTimer(elapsed), status_code < _BAD_REQUEST
            )

        return _TrackedResponse(body, self.client, finish)