"""Detached process spawning.

The daemon must outlive the client that started it and must never be tied
to the client's terminal.  On POSIX that means a new session (``setsid``);
on Windows a hidden console window.  Either way all standard streams go to
``DEVNULL`` and the child is never waited on.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from collections.abc import Mapping, Sequence

from agent_browser_cli.errors import DaemonSpawnError

logger = logging.getLogger(__name__)

# CREATE_NO_WINDOW only; DETACHED_PROCESS conflicts with it for console apps
_CREATE_NO_WINDOW = 0x08000000


class ProcessLauncher:
    """Start fully detached background processes."""

    def popen_kwargs(self) -> dict:
        kwargs: dict = {
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.DEVNULL,
            "stderr": subprocess.DEVNULL,
            "close_fds": True,
        }
        if sys.platform == "win32":
            kwargs["creationflags"] = getattr(
                subprocess, "CREATE_NO_WINDOW", _CREATE_NO_WINDOW
            )
        else:
            kwargs["start_new_session"] = True
        return kwargs

    def spawn(self, argv: Sequence[str], env: Mapping[str, str]) -> int:
        """Spawn *argv* detached with exactly *env* and return the child PID.

        Raises:
            DaemonSpawnError: If the OS refuses to create the process.
        """
        try:
            proc = subprocess.Popen(list(argv), env=dict(env), **self.popen_kwargs())
        except OSError as e:
            raise DaemonSpawnError(f"Failed to start daemon: {e}") from e
        logger.debug(f"Spawned {argv[0]!r} as pid {proc.pid}")
        return proc.pid
