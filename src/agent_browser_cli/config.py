from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Client-side settings, overridable through ``AGENT_BROWSER_*`` env vars."""

    model_config = SettingsConfigDict(env_prefix="AGENT_BROWSER_")

    # Session / discovery
    session: str = "default"
    home: str | None = None
    tmp_dir: str | None = None
    marker_prefix: str = "agent-browser"

    # Transport selection: "auto" picks Unix sockets everywhere but Windows
    transport: Literal["auto", "unix", "tcp"] = "auto"

    # Daemon invocation
    daemon_runtime: str = "node"
    daemon_entry: str = "daemon.js"

    # Readiness polling
    poll_interval: float = Field(default=0.1, gt=0)
    poll_attempts: int = Field(default=50, ge=1)
    ready_timeout: float = Field(default=0.05, gt=0)

    # Command exchange
    read_timeout: float = Field(default=30.0, gt=0)
    write_timeout: float = Field(default=5.0, gt=0)

    debug: bool = False

    @field_validator("session", mode="before")
    @classmethod
    def parse_session(cls, v: str | None) -> str:
        if v is None or not str(v).strip():
            return "default"
        return str(v).strip()


def load_settings(**overrides: object) -> ClientSettings:
    """Build settings from the environment, with explicit keyword overrides on top."""
    return ClientSettings(**overrides)


def get_version() -> str:
    """Return the package version string."""
    try:
        return version("agent-browser-cli")
    except PackageNotFoundError:
        return "0.1.0"
