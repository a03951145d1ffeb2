"""Session endpoint resolution.

Every session maps to a pair of files in the system temp directory::

    <tmp>/agent-browser-<session>.pid    # written by the daemon
    <tmp>/agent-browser-<session>.sock   # Unix domain socket (POSIX only)

Platforms without usable Unix domain sockets talk to the daemon over
loopback TCP instead, on a port derived from the session name.  The
derivation has to agree with the daemon's own, so it is a pure function of
the session string.
"""

from __future__ import annotations

import sys
import tempfile
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from agent_browser_cli.config import ClientSettings, load_settings

_PORT_BASE = 49152
_PORT_RANGE = 16383
LOOPBACK_HOST = "127.0.0.1"


class UnixEndpoint(BaseModel):
    kind: Literal["unix"] = "unix"
    path: Path

    def __str__(self) -> str:
        return str(self.path)


class TcpEndpoint(BaseModel):
    kind: Literal["tcp"] = "tcp"
    host: str = LOOPBACK_HOST
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


Endpoint = Annotated[UnixEndpoint | TcpEndpoint, Field(discriminator="kind")]


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


def get_tmp_dir(settings: ClientSettings | None = None) -> Path:
    """Return the shared directory holding every session's marker and socket."""
    settings = settings or load_settings()
    if settings.tmp_dir:
        return Path(settings.tmp_dir)
    return Path(tempfile.gettempdir())


def _session_file(session: str, suffix: str, settings: ClientSettings | None) -> Path:
    settings = settings or load_settings()
    return get_tmp_dir(settings) / f"{settings.marker_prefix}-{session}{suffix}"


def get_socket_path(session: str, settings: ClientSettings | None = None) -> Path:
    """Return the Unix domain socket path for *session*."""
    return _session_file(session, ".sock", settings)


def get_pid_path(session: str, settings: ClientSettings | None = None) -> Path:
    """Return the daemon PID marker path for *session*."""
    return _session_file(session, ".pid", settings)


# ---------------------------------------------------------------------------
# TCP port derivation
# ---------------------------------------------------------------------------


def _string_hash(value: str) -> int:
    """Signed 32-bit ``hash * 31 + unit`` over the UTF-16 code units of *value*.

    Identical to JavaScript's classic ``(hash << 5) - hash + charCodeAt(i)``
    loop, so non-BMP characters contribute both surrogates.

    Clients that hash Unicode scalar values instead (one unit per code point)
    agree on every BMP-only name but derive a different port for names with
    characters outside the BMP, such as emoji.
    """
    data = value.encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = ((h << 5) - h + unit) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 0x100000000
    return h


def get_port_for_session(session: str) -> int:
    """Return the loopback TCP port for *session*, in ``[49152, 65534]``."""
    return _PORT_BASE + abs(_string_hash(session)) % _PORT_RANGE


# ---------------------------------------------------------------------------
# Endpoint selection
# ---------------------------------------------------------------------------


def uses_unix_socket(settings: ClientSettings | None = None) -> bool:
    """Whether sessions are reached over Unix domain sockets on this host."""
    settings = settings or load_settings()
    if settings.transport == "unix":
        return True
    if settings.transport == "tcp":
        return False
    return sys.platform != "win32"


def resolve_endpoint(
    session: str, settings: ClientSettings | None = None
) -> Endpoint:
    """Return the endpoint a client should connect to for *session*."""
    settings = settings or load_settings()
    if uses_unix_socket(settings):
        return UnixEndpoint(path=get_socket_path(session, settings))
    return TcpEndpoint(port=get_port_for_session(session))
