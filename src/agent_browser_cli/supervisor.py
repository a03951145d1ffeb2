"""Ensure a daemon is running for a session.

``ensure_daemon`` is the only entry point.  It is safe for several clients to
call it for the same session at once: there is no lock, readiness checks are
idempotent, and if two daemons get spawned the one that loses the listener
bind simply exits.  Each caller only needs to see *a* ready daemon within its
own polling budget.
"""

from __future__ import annotations

import logging
import os
import sys
import time
from collections.abc import Callable, Mapping
from pathlib import Path

from pydantic import BaseModel, Field

from agent_browser_cli.config import ClientSettings, load_settings
from agent_browser_cli.errors import DaemonNotFoundError, DaemonStartError
from agent_browser_cli.launcher import ProcessLauncher
from agent_browser_cli.liveness import daemon_ready, is_daemon_running
from agent_browser_cli.markers import MarkerStore

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "AGENT_BROWSER_HOME"

# Environment handed to the daemon
DAEMON_ENV_VAR = "AGENT_BROWSER_DAEMON"
SESSION_ENV_VAR = "AGENT_BROWSER_SESSION"
HEADED_ENV_VAR = "AGENT_BROWSER_HEADED"
EXECUTABLE_PATH_ENV_VAR = "AGENT_BROWSER_EXECUTABLE_PATH"
EXTENSIONS_ENV_VAR = "AGENT_BROWSER_EXTENSIONS"


class DaemonOptions(BaseModel):
    headed: bool = False
    executable_path: str | None = None
    extensions: list[str] = Field(default_factory=list)


class DaemonResult(BaseModel):
    # True if an existing daemon was reused, False if a new one was started
    already_running: bool


# ---------------------------------------------------------------------------
# Entry point discovery
# ---------------------------------------------------------------------------


def _client_dir() -> Path:
    """Directory of the running client executable (the console script)."""
    return Path(sys.argv[0]).resolve().parent


def daemon_entry_candidates(settings: ClientSettings | None = None) -> list[Path]:
    """Return every location searched for the daemon entry point, in order."""
    settings = settings or load_settings()
    entry = settings.daemon_entry
    candidates: list[Path] = []
    if settings.home:
        home = Path(settings.home)
        candidates += [home / "dist" / entry, home / entry]
    exe_dir = _client_dir()
    candidates += [
        exe_dir / entry,
        exe_dir / ".." / "dist" / entry,
        Path("dist") / entry,
    ]
    return candidates


def find_daemon_entry(settings: ClientSettings | None = None) -> Path:
    """Return the first existing daemon entry point.

    Raises:
        DaemonNotFoundError: If none of the candidates exists.
    """
    for candidate in daemon_entry_candidates(settings):
        if candidate.exists():
            return candidate
    raise DaemonNotFoundError(HOME_ENV_VAR)


def build_daemon_env(
    session: str,
    options: DaemonOptions,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Return the environment the daemon is spawned with.

    All daemon configuration travels through environment variables; the
    daemon's command line carries nothing but its entry point.
    """
    env = dict(os.environ if base is None else base)
    env[DAEMON_ENV_VAR] = "1"
    env[SESSION_ENV_VAR] = session
    if options.headed:
        env[HEADED_ENV_VAR] = "1"
    if options.executable_path:
        env[EXECUTABLE_PATH_ENV_VAR] = options.executable_path
    if options.extensions:
        env[EXTENSIONS_ENV_VAR] = ",".join(options.extensions)
    return env


# ---------------------------------------------------------------------------
# Supervisor
# ---------------------------------------------------------------------------


def wait_until_ready(
    session: str,
    *,
    settings: ClientSettings | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Poll the session's listener until it accepts connections or the budget runs out."""
    settings = settings or load_settings()
    for attempt in range(1, settings.poll_attempts + 1):
        if daemon_ready(session, settings=settings):
            logger.debug(f"Daemon for {session!r} ready after {attempt} attempt(s)")
            return True
        sleep(settings.poll_interval)
    return False


def ensure_daemon(
    session: str,
    options: DaemonOptions | None = None,
    *,
    settings: ClientSettings | None = None,
    store: MarkerStore | None = None,
    launcher: ProcessLauncher | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> DaemonResult:
    """Make sure a ready daemon is serving *session*, starting one if needed.

    Raises:
        DaemonNotFoundError: No daemon entry point could be located.
        DaemonSpawnError: The OS refused to start the daemon process.
        DaemonStartError: The daemon never became ready within the poll budget.
    """
    settings = settings or load_settings()
    options = options or DaemonOptions()

    if is_daemon_running(session, settings=settings, store=store) and daemon_ready(
        session, settings=settings
    ):
        return DaemonResult(already_running=True)

    entry = find_daemon_entry(settings)
    launcher = launcher or ProcessLauncher()
    argv = [settings.daemon_runtime, str(entry)]
    logger.info(f"Starting daemon for session {session!r} from {entry}")
    launcher.spawn(argv, build_daemon_env(session, options))

    if wait_until_ready(session, settings=settings, sleep=sleep):
        return DaemonResult(already_running=False)

    raise DaemonStartError("Daemon failed to start")
