"""Daemon liveness checks.

Two independent questions are answered here:

* *is the daemon process alive?*: from the PID marker, probing the OS;
* *is the daemon ready?*: whether its listener accepts connections.

A process can exist before it has bound its listener, and a listener can
briefly exist before the marker has been written, so callers that need a
usable daemon check both.
"""

from __future__ import annotations

import ctypes
import logging
import os
import sys

from agent_browser_cli.config import ClientSettings, load_settings
from agent_browser_cli.endpoint import resolve_endpoint
from agent_browser_cli.markers import MarkerStore, read_pid
from agent_browser_cli.transport import open_socket

logger = logging.getLogger(__name__)

_PROCESS_QUERY_LIMITED_INFORMATION = 0x1000


def _windows_pid_exists(pid: int) -> bool:
    kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
    handle = kernel32.OpenProcess(_PROCESS_QUERY_LIMITED_INFORMATION, False, pid)
    if not handle:
        return False
    kernel32.CloseHandle(handle)
    return True


def pid_exists(pid: int) -> bool:
    """Return ``True`` if a process with *pid* currently exists.

    On POSIX this uses ``os.kill(pid, 0)``, which checks for existence without
    delivering a signal.  Windows has no signal probe, so a limited-query
    process handle is opened and immediately closed instead.
    """
    if pid <= 0:
        return False
    if sys.platform == "win32":
        try:
            return _windows_pid_exists(pid)
        except (OSError, OverflowError, ctypes.ArgumentError):
            return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Process exists but belongs to someone else, still alive
        return True
    except (OSError, OverflowError, ValueError):
        # OverflowError: pid outside the platform pid_t range
        return False
    return True


def is_daemon_running(
    session: str,
    *,
    settings: ClientSettings | None = None,
    store: MarkerStore | None = None,
) -> bool:
    """Return ``True`` if the PID recorded for *session* belongs to a live process."""
    pid = read_pid(session, settings, store)
    if pid is None:
        return False
    alive = pid_exists(pid)
    if not alive:
        logger.debug(f"Stale marker for session {session!r} (pid {pid})")
    return alive


def daemon_ready(session: str, *, settings: ClientSettings | None = None) -> bool:
    """Return ``True`` if the session's listener accepts a connection right now."""
    settings = settings or load_settings()
    endpoint = resolve_endpoint(session, settings)
    s, address = open_socket(endpoint)
    try:
        s.settimeout(settings.ready_timeout)
        s.connect(address)
    except OSError:
        return False
    finally:
        s.close()
    return True
