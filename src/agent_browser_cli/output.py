"""Rendering daemon responses for the terminal."""

from __future__ import annotations

import json
import sys

from agent_browser_cli.protocol import Response

ERROR_INDICATOR = "✗"
WARNING_INDICATOR = "⚠"


def format_data(data: object) -> str:
    if isinstance(data, str):
        return data
    if isinstance(data, dict) and isinstance(data.get("output"), str):
        return data["output"]
    return json.dumps(data, indent=2)


def print_response(response: Response, json_mode: bool = False) -> None:
    """Print *response* either as one JSON line or human-readable text."""
    if json_mode:
        print(response.model_dump_json(exclude_none=True))
        return
    if response.success:
        if response.data is not None:
            print(format_data(response.data))
        return
    print(
        f"{ERROR_INDICATOR} {response.error or 'Unknown error'}",
        file=sys.stderr,
    )


def print_error(message: str, json_mode: bool = False) -> None:
    """Report a client-side failure (no response from the daemon)."""
    if json_mode:
        print(json.dumps({"success": False, "error": message}))
    else:
        print(f"{ERROR_INDICATOR} {message}", file=sys.stderr)


def print_warning(message: str) -> None:
    print(f"{WARNING_INDICATOR} {message}", file=sys.stderr)
