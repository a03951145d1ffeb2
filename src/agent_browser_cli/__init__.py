"""Client for per-session agent-browser daemons.

Starts the daemon for a session on demand and exchanges newline-delimited
JSON commands with it over a Unix domain socket (or loopback TCP on Windows).
"""

from agent_browser_cli.errors import AgentBrowserError
from agent_browser_cli.protocol import Response, build_command, send_command
from agent_browser_cli.session import list_sessions
from agent_browser_cli.supervisor import DaemonOptions, DaemonResult, ensure_daemon

__all__ = [
    "AgentBrowserError",
    "DaemonOptions",
    "DaemonResult",
    "Response",
    "build_command",
    "ensure_daemon",
    "list_sessions",
    "send_command",
]
