"""Session registry and session name resolution.

Sessions are not recorded anywhere by the client.  The set of running
sessions is recovered from the daemon PID markers in the shared temp
directory::

    /tmp/
      agent-browser-default.pid
      agent-browser-default.sock
      agent-browser-scraper.pid
      agent-browser-scraper.sock
"""

from __future__ import annotations

import logging

from agent_browser_cli.config import ClientSettings, load_settings
from agent_browser_cli.endpoint import get_tmp_dir
from agent_browser_cli.liveness import pid_exists
from agent_browser_cli.markers import MarkerStore, parse_pid

logger = logging.getLogger(__name__)

_PID_SUFFIX = ".pid"
_DEFAULT_SESSION = "default"


def session_from_marker_name(name: str, prefix: str) -> str | None:
    """Recover the session name from a marker filename, if it is one."""
    head = f"{prefix}-"
    if not (name.startswith(head) and name.endswith(_PID_SUFFIX)):
        return None
    session = name[len(head) : -len(_PID_SUFFIX)]
    return session or None


def list_sessions(
    *,
    settings: ClientSettings | None = None,
    store: MarkerStore | None = None,
) -> set[str]:
    """Return the names of all sessions whose daemon process is alive.

    This is a best-effort scan: unreadable markers and malformed PIDs are
    skipped, never raised.  The result is unordered.
    """
    settings = settings or load_settings()
    store = store or MarkerStore()
    tmp_dir = get_tmp_dir(settings)

    sessions: set[str] = set()
    for name in store.list_names(tmp_dir):
        session = session_from_marker_name(name, settings.marker_prefix)
        if session is None:
            continue
        pid = parse_pid(store.read_text(tmp_dir / name))
        if pid is None:
            logger.debug(f"Skipping marker {name!r}: no valid pid")
            continue
        if pid_exists(pid):
            sessions.add(session)
    return sessions


def resolve_session_name(
    cli_arg: str | None, settings: ClientSettings | None = None
) -> str:
    """Determine which session name to use.

    Priority (highest to lowest):

    1. Explicit *cli_arg* (if not ``None`` and not empty).
    2. The ``AGENT_BROWSER_SESSION`` environment variable.
    3. ``"default"``.
    """
    if cli_arg and cli_arg.strip():
        return cli_arg.strip()
    settings = settings or load_settings()
    return settings.session or _DEFAULT_SESSION
