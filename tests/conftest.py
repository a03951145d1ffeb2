"""Shared fixtures for agent-browser-cli tests."""

from __future__ import annotations

import json
import os
import shutil
import socket
import socketserver
import sys
import tempfile
import threading
from collections.abc import Callable
from pathlib import Path

import pytest

from agent_browser_cli import endpoint
from agent_browser_cli.config import ClientSettings
from agent_browser_cli.endpoint import get_pid_path, get_socket_path
from agent_browser_cli.markers import MarkerStore

Reply = Callable[[bytes], "bytes | None"]


def ok_reply(data: object = None) -> Reply:
    """A daemon reply that answers every request with success."""

    def reply(line: bytes) -> bytes:
        payload: dict = {"success": True}
        if data is not None:
            payload["data"] = data
        return json.dumps(payload).encode() + b"\n"

    return reply


# ---------------------------------------------------------------------------
# Environment / settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's AGENT_BROWSER_* variables out of every test."""
    for key in list(os.environ):
        if key.startswith("AGENT_BROWSER_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def short_tmp():
    """A short temp dir so Unix socket paths stay under the 108-byte limit.

    pytest's tmp_path (e.g. /tmp/pytest-of-user/pytest-N/test_name0/) is too
    long once the socket filename is appended.
    """
    tmpdir = Path(tempfile.mkdtemp(prefix="abt-"))
    yield tmpdir
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def settings(short_tmp) -> ClientSettings:
    """Settings pointing at the short temp dir, with a shrunken poll budget."""
    return ClientSettings(
        tmp_dir=str(short_tmp),
        transport="tcp" if sys.platform == "win32" else "unix",
        poll_interval=0.01,
        poll_attempts=5,
        read_timeout=2.0,
        write_timeout=2.0,
    )


@pytest.fixture
def write_marker(settings):
    """Write a daemon PID marker for a session, as the daemon would."""

    def _write(session: str, content: str | int) -> Path:
        path = get_pid_path(session, settings)
        path.write_text(str(content), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def dead_pid() -> int:
    """A PID that is guaranteed not to belong to a running process."""
    import subprocess

    proc = subprocess.Popen([sys.executable, "-c", "pass"])
    proc.wait()
    return proc.pid


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeMarkerStore(MarkerStore):
    """In-memory marker store keyed by path."""

    def __init__(self, files: dict[Path, str] | None = None) -> None:
        self.files: dict[Path, str] = dict(files or {})

    def read_text(self, path: Path) -> str | None:
        return self.files.get(path)

    def exists(self, path: Path) -> bool:
        return path in self.files

    def list_names(self, directory: Path) -> list[str]:
        return [p.name for p in self.files if p.parent == directory]


class FakeLauncher:
    """Records spawn requests instead of creating processes."""

    def __init__(self, on_spawn: Callable[[], None] | None = None) -> None:
        self.calls: list[tuple[list[str], dict[str, str]]] = []
        self.on_spawn = on_spawn

    def spawn(self, argv, env) -> int:
        self.calls.append((list(argv), dict(env)))
        if self.on_spawn is not None:
            self.on_spawn()
        return 4242


@pytest.fixture
def marker_store() -> FakeMarkerStore:
    return FakeMarkerStore()


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


# ---------------------------------------------------------------------------
# In-process fake daemon
# ---------------------------------------------------------------------------


class _Handler(socketserver.StreamRequestHandler):
    def handle(self) -> None:
        line = self.rfile.readline()
        if not line:
            # Readiness probes connect and close without sending anything
            return
        self.server.requests.append(line)  # type: ignore[attr-defined]
        reply = self.server.reply(line)  # type: ignore[attr-defined]
        if reply is not None:
            self.wfile.write(reply)
            self.wfile.flush()


class FakeDaemon:
    """A threaded socket server speaking the one-line JSON protocol."""

    def __init__(self, server: socketserver.BaseServer, cleanup: Path | None = None):
        self.server = server
        self.server.requests = []  # type: ignore[attr-defined]
        self._cleanup = cleanup
        self._thread = threading.Thread(target=server.serve_forever, daemon=True)

    @property
    def requests(self) -> list[bytes]:
        return self.server.requests  # type: ignore[attr-defined]

    def set_reply(self, reply: Reply) -> None:
        self.server.reply = reply  # type: ignore[attr-defined]

    def start(self) -> FakeDaemon:
        self._thread.start()
        return self

    def stop(self) -> None:
        self.server.shutdown()
        self.server.server_close()
        self._thread.join(timeout=5)
        if self._cleanup is not None:
            self._cleanup.unlink(missing_ok=True)


if hasattr(socket, "AF_UNIX"):

    class _UnixServer(socketserver.ThreadingMixIn, socketserver.UnixStreamServer):
        daemon_threads = True


class _TcpServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    daemon_threads = True
    allow_reuse_address = True


@pytest.fixture
def fake_daemon(settings, monkeypatch):
    """Factory starting a fake daemon listening on a session's endpoint.

    For TCP the daemon binds an ephemeral port and the session's derived port
    is patched to match, so tests never collide on the hashed port.
    """
    daemons: list[FakeDaemon] = []

    def _start(session: str, reply: Reply | None = None) -> FakeDaemon:
        if settings.transport == "tcp":
            server = _TcpServer((endpoint.LOOPBACK_HOST, 0), _Handler)
            port = server.server_address[1]
            monkeypatch.setattr(endpoint, "get_port_for_session", lambda s: port)
            daemon = FakeDaemon(server)
        else:
            if not hasattr(socket, "AF_UNIX"):
                pytest.skip("Unix domain sockets not available")
            path = get_socket_path(session, settings)
            server = _UnixServer(str(path), _Handler)
            daemon = FakeDaemon(server, cleanup=path)
        daemon.set_reply(reply or ok_reply())
        daemons.append(daemon.start())
        return daemon

    yield _start

    for daemon in daemons:
        daemon.stop()
