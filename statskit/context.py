"""Carrying a stats client along with the current execution context."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

from .client_base import Client
from .noop_client import NoopClient

_current: ContextVar[Optional[Client]] = ContextVar("statskit_client", default=None)


@contextmanager
def with_client(client: Client) -> Iterator[Client]:
    """Make ``client`` the current stats client inside the ``with`` block."""
    token = _current.set(client)
    try:
        yield client
    finally:
        _current.reset(token)


def current_client() -> Client:
    """Return the current stats client, or a no-op client if none is set."""
    client = _current.get()
    return client if client is not None else NoopClient()