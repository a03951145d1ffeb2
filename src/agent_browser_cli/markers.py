"""Read-only access to the daemon marker files in the shared temp directory.

The daemon owns its ``.pid`` marker: it writes it on startup and removes it on
exit.  Clients only ever read, so the store exposes no write or delete
operations.
"""

from __future__ import annotations

import logging
from pathlib import Path

from agent_browser_cli.config import ClientSettings
from agent_browser_cli.endpoint import get_pid_path

logger = logging.getLogger(__name__)

# Largest pid the OS process probes accept (signed 32-bit pid_t)
_MAX_PID = 2**31 - 1


class MarkerStore:
    """Filesystem-backed marker lookups, swappable for a fake in tests."""

    def read_text(self, path: Path) -> str | None:
        """Return the file contents, or ``None`` when it is missing or unreadable."""
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None

    def exists(self, path: Path) -> bool:
        return path.exists()

    def list_names(self, directory: Path) -> list[str]:
        """Return the entry names in *directory* (empty if it cannot be listed)."""
        try:
            return [entry.name for entry in directory.iterdir()]
        except OSError as e:
            logger.debug(f"Cannot scan {directory}: {e}")
            return []


def parse_pid(text: str | None) -> int | None:
    """Parse a marker's contents, tolerating surrounding whitespace."""
    if text is None:
        return None
    text = text.strip()
    if not text:
        return None
    try:
        pid = int(text)
    except ValueError:
        return None
    if pid <= 0 or pid > _MAX_PID:
        return None
    return pid


def read_pid(
    session: str,
    settings: ClientSettings | None = None,
    store: MarkerStore | None = None,
) -> int | None:
    """Read the PID recorded for *session*.

    Returns ``None`` if the marker is missing, empty, or not a pid in the
    positive signed 32-bit range.
    """
    store = store or MarkerStore()
    path = get_pid_path(session, settings)
    if not store.exists(path):
        return None
    return parse_pid(store.read_text(path))
