"""Exceptions raised by the daemon supervisor and the command protocol client."""

from __future__ import annotations


class AgentBrowserError(Exception):
    """Base class for every error surfaced to callers of this package."""


class DaemonNotFoundError(AgentBrowserError):
    """No daemon entry point exists anywhere in the search order."""

    def __init__(self, env_var: str = "AGENT_BROWSER_HOME") -> None:
        self.env_var = env_var
        super().__init__(
            f"Daemon not found. Set {env_var} environment variable "
            "or run from project directory."
        )


class DaemonSpawnError(AgentBrowserError):
    """The OS refused to create the daemon process."""


class DaemonStartError(AgentBrowserError):
    """The daemon was spawned but never became ready within the poll budget."""


class DaemonConnectError(AgentBrowserError):
    """The transport could not reach the session endpoint."""


class TransportError(AgentBrowserError):
    """An I/O failure while exchanging a command with the daemon."""


class TransportTimeoutError(TransportError):
    """A read or write exceeded its timeout."""


class InvalidResponseError(AgentBrowserError):
    """The daemon's response line was not a valid response object."""
