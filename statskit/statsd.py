"""A small UDP client for the StatsD line protocol."""

from __future__ import annotations

import socket
import threading
from typing import Union

DEFAULT_ADDRESS = ":8125"

Number = Union[int, float]


def _split_address(address: str) -> tuple[str, int]:
    host, separator, port = address.rpartition(":")
    if not separator:
        raise ValueError(f"missing port in address {address!r}")
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"invalid port in address {address!r}") from None
    if not 0 <= port_number <= 65535:
        raise ValueError(f"invalid port in address {address!r}")
    return host.strip("[]") or "localhost", port_number


def _format_number(value: Number) -> str:
    if isinstance(value, int):
        return str(value)
    text = repr(float(value))
    if "e" in text:
        text = format(value, "f").rstrip("0").rstrip(".")
    return text


class StatsDConnection:
    """Sends counters, gauges and timings to a StatsD server over UDP."""

    def __init__(self, address: str = "", prefix: str = "") -> None:
        host, port = _split_address(address or DEFAULT_ADDRESS)
        family, kind, proto, _, sockaddr = socket.getaddrinfo(
            host, port, type=socket.SOCK_DGRAM
        )[0]
        sock = socket.socket(family, kind, proto)
        try:
            sock.connect(sockaddr)
        except OSError:
            sock.close()
            raise
        self._socket = sock
        self.prefix = prefix.removesuffix(".") + "." if prefix else ""
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def increment(self, bucket: str) -> None:
        """Increment a counter by one."""
        self.count(bucket, 1)

    def count(self, bucket: str, n: Number) -> None:
        """Add ``n`` to a counter."""
        self._send([self._line(bucket, n, "c")])

    def gauge(self, bucket: str, value: Number) -> None:
        """Set a gauge; negative values are sent after a reset to zero."""
        lines = [self._line(bucket, 0, "g")] if value < 0 else []
        lines.append(self._line(bucket, value, "g"))
        self._send(lines)

    def timing(self, bucket: str, value: Number) -> None:
        """Send a timing in milliseconds."""
        self._send([self._line(bucket, value, "ms")])

    def close(self) -> None:
        """Close the connection; later sends are dropped."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._socket.close()

    def __enter__(self) -> "StatsDConnection":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _line(self, bucket: str, value: Number, kind: str) -> str:
        return f"{self.prefix}{bucket}:{_format_number(value)}|{kind}"

    def _send(self, lines: list[str]) -> None:
        payload = "\n".join(lines).encode()
        with self._lock:
            if self._closed:
                return
            try:
                self._socket.send(payload)
            except OSError:
                # UDP delivery is best effort; a missing server must not break callers
                pass