"""Duplex byte stream to a session's daemon.

Both backends (Unix domain socket and loopback TCP) are plain stream
sockets, so a single ``Connection`` wraps either.  Which one is used is
decided by ``resolve_endpoint`` from the platform and settings, never
negotiated with the daemon.
"""

from __future__ import annotations

import logging
import socket

from agent_browser_cli.config import ClientSettings, load_settings
from agent_browser_cli.endpoint import Endpoint, UnixEndpoint, resolve_endpoint
from agent_browser_cli.errors import (
    DaemonConnectError,
    TransportError,
    TransportTimeoutError,
)

logger = logging.getLogger(__name__)

_BUFFER_SIZE = 65536


class Connection:
    """A connected stream with independent read and write timeouts.

    Python sockets carry a single timeout, so the relevant one is applied
    right before each read or write.
    """

    def __init__(self, sock: socket.socket, endpoint: Endpoint) -> None:
        self._sock = sock
        self._buffer = b""
        self._read_timeout: float | None = None
        self._write_timeout: float | None = None
        self.endpoint = endpoint

    # -- timeouts -----------------------------------------------------------

    @property
    def read_timeout(self) -> float | None:
        return self._read_timeout

    @property
    def write_timeout(self) -> float | None:
        return self._write_timeout

    def set_read_timeout(self, seconds: float | None) -> None:
        self._read_timeout = seconds

    def set_write_timeout(self, seconds: float | None) -> None:
        self._write_timeout = seconds

    # -- I/O ----------------------------------------------------------------

    def _recv(self, size: int) -> bytes:
        try:
            self._sock.settimeout(self._read_timeout)
            return self._sock.recv(size)
        except socket.timeout as e:
            raise TransportTimeoutError(
                f"Failed to read: timed out after {self._read_timeout}s"
            ) from e
        except OSError as e:
            raise TransportError(f"Failed to read: {e}") from e

    def read(self, size: int = _BUFFER_SIZE) -> bytes:
        """Read up to *size* bytes; ``b""`` means the peer closed the stream."""
        if self._buffer:
            data, self._buffer = self._buffer[:size], self._buffer[size:]
            return data
        return self._recv(size)

    def readline(self) -> bytes:
        """Read up to and including the next newline, or until EOF."""
        while b"\n" not in self._buffer:
            chunk = self._recv(_BUFFER_SIZE)
            if not chunk:
                line, self._buffer = self._buffer, b""
                return line
            self._buffer += chunk
        index = self._buffer.index(b"\n") + 1
        line, self._buffer = self._buffer[:index], self._buffer[index:]
        return line

    def write(self, data: bytes) -> None:
        """Write the complete buffer."""
        try:
            self._sock.settimeout(self._write_timeout)
            self._sock.sendall(data)
        except socket.timeout as e:
            raise TransportTimeoutError(
                f"Failed to send: timed out after {self._write_timeout}s"
            ) from e
        except OSError as e:
            raise TransportError(f"Failed to send: {e}") from e

    def flush(self) -> None:
        # sendall() leaves nothing buffered on our side
        pass

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_socket(endpoint: Endpoint) -> tuple[socket.socket, object]:
    """Create an unconnected stream socket for *endpoint* and its address."""
    if isinstance(endpoint, UnixEndpoint):
        return socket.socket(socket.AF_UNIX, socket.SOCK_STREAM), str(endpoint.path)
    return (
        socket.socket(socket.AF_INET, socket.SOCK_STREAM),
        (endpoint.host, endpoint.port),
    )


def connect(session: str, settings: ClientSettings | None = None) -> Connection:
    """Open a connection to the daemon serving *session*.

    Raises:
        DaemonConnectError: If the endpoint cannot be reached.  Callers usually
            treat this as "daemon unreachable" and run ``ensure_daemon`` again.
    """
    settings = settings or load_settings()
    endpoint = resolve_endpoint(session, settings)
    s, address = open_socket(endpoint)
    try:
        s.settimeout(settings.write_timeout)
        s.connect(address)
    except OSError as e:
        s.close()
        raise DaemonConnectError(f"Failed to connect: {e}") from e
    logger.debug(f"Connected to {endpoint} for session {session!r}")
    return Connection(s, endpoint)
