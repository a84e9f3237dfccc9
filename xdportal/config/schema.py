"""Configuration schema using Pydantic.

One data model with defaults; optionally persisted to ~/.config/xdportal/config.json
and overridable through XDPORTAL_* environment variables.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings


class BusConfig(BaseModel):
    """Which bus to connect to."""
    bus_type: Literal["session", "system"] = "session"
    address: str | None = None  # Explicit bus address; overrides DBUS_SESSION_BUS_ADDRESS


class LoggingConfig(BaseModel):
    """Loguru sinks."""
    level: str = "WARNING"
    file: str | None = None  # Rotating debug log, e.g. "~/.cache/xdportal/xdportal.log"


class PortalConfig(BaseSettings):
    """Root configuration for xdportal."""
    bus: BusConfig = Field(default_factory=BusConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    destination: str = "org.freedesktop.portal.Desktop"
    object_path: str = "/org/freedesktop/portal/desktop"
    call_timeout: float = 25.0  # Seconds to wait for an immediate reply
    request_timeout: float | None = None  # None: wait as long as the user keeps the dialog open

    model_config = ConfigDict(
        env_prefix="XDPORTAL_",
        env_nested_delimiter="__",
    )
