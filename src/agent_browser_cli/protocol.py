"""Newline-delimited JSON command protocol.

One request and one response per connection::

    -> {"id": "3f1c...", "action": "navigate", "url": "https://example.com"}\\n
    <- {"success": true, "data": {"url": "https://example.com"}}\\n

The ``id`` is a fresh token per call.  Since a connection never carries more
than one exchange it is not used to match responses.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

from pydantic import BaseModel, ValidationError

from agent_browser_cli.config import ClientSettings, load_settings
from agent_browser_cli.errors import InvalidResponseError, TransportError
from agent_browser_cli.transport import connect

logger = logging.getLogger(__name__)


class Response(BaseModel):
    success: bool
    data: Any = None
    error: str | None = None


def generate_id() -> str:
    """Return a new request correlation token."""
    return uuid.uuid4().hex


def build_command(action: str, **fields: Any) -> dict[str, Any]:
    """Return a request object for *action* with a fresh ``id``."""
    return {"id": generate_id(), "action": action, **fields}


def encode_command(command: dict[str, Any]) -> bytes:
    """Serialize *command* to a single JSON line."""
    return json.dumps(command, separators=(",", ":")).encode("utf-8") + b"\n"


def parse_response(line: str | bytes) -> Response:
    """Deserialize one response line.

    Raises:
        InvalidResponseError: If the line is not JSON or not a response object.
    """
    try:
        payload = json.loads(line)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidResponseError(f"Invalid response: {e}") from e
    try:
        return Response.model_validate(payload)
    except ValidationError as e:
        raise InvalidResponseError(f"Invalid response: {e}") from e


def send_command(
    command: dict[str, Any],
    session: str,
    *,
    settings: ClientSettings | None = None,
) -> Response:
    """Send *command* to the daemon serving *session* and return its response.

    Each call opens a fresh connection.  Read and write timeouts bound the
    whole exchange and are not retried.

    Raises:
        DaemonConnectError: The daemon's endpoint could not be reached.
        TransportError: Sending or reading failed, timed out, or the daemon
            closed the connection without answering.
        InvalidResponseError: The answer was not a valid response object.
    """
    settings = settings or load_settings()
    with connect(session, settings) as conn:
        conn.set_read_timeout(settings.read_timeout)
        conn.set_write_timeout(settings.write_timeout)

        logger.debug(f"Sending {command.get('action')!r} to session {session!r}")
        conn.write(encode_command(command))
        conn.flush()

        line = conn.readline()

    if not line.strip():
        raise TransportError("Failed to read: connection closed by daemon")
    return parse_response(line)
