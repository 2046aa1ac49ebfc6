"""
Logging Facade Configuration.

Loads the facade configuration from ``LOG_*`` environment variables (and an
optional ``.env`` file). Malformed values never abort: each one is reported
as a warning and replaced by the field default.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

import structlog
from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigValueError
from .levels import Level

logger = structlog.get_logger(logger_name="logfacade.config")

DEFAULT_PATTERN = "%Y-%m-%d %H:%M:%S.%e [%n] [%l] %v"
DEFAULT_QUEUE_SIZE = 8192

KNOWN_MODES = ("none", "console", "file", "network")

UdpFormat = Literal["json", "plain"]


class LoggerConfig(BaseSettings):
    """Facade configuration, consumed as an already-validated value."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    mode: str = Field(default="none", description="Comma-separated modes (none, console, file, network)")
    file_path: str = Field(default="", description="Active log file for the file sink")
    file_size_mb: int = Field(default=1, description="Rotation threshold in megabytes")
    number_of_log_files: int = Field(default=3, description="Total files kept on disk, active included")
    network_ip: str = Field(default="", description="UDP destination host")
    network_port: int = Field(default=0, description="UDP destination port")
    level: Level = Field(default=Level.DEBUG, description="Base level for the facade and every sink")
    pattern: str = Field(default=DEFAULT_PATTERN, description="Pattern template for rendering records")
    udp_format: UdpFormat = Field(default="json", description="UDP wire format (json, plain)")
    queue_size: int = Field(default=DEFAULT_QUEUE_SIZE, description="Capacity of the event queue")
    flush_on: Level = Field(default=Level.TRACE, description="Flush a sink after records at or above this level")
    logger_name: str = Field(default="root", description="Name used by get_logger() without arguments")
    console_color: Optional[bool] = Field(default=None, description="Force console colors on or off")

    @property
    def modes(self) -> tuple[str, ...]:
        return tuple(self.mode.split(","))

    @property
    def file_size_bytes(self) -> int:
        return self.file_size_mb * 1024 * 1024

    @property
    def is_silent(self) -> bool:
        return self.modes == ("none",)

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("mode", mode="before")
    @classmethod
    def _normalize_modes(cls, value: Any) -> str:
        if value is None:
            return "none"
        if isinstance(value, str):
            names = value.split(",")
        else:
            names = [str(item) for item in value]

        modes: list[str] = []
        for raw in names:
            name = raw.strip().lower()
            if not name or name in modes:
                continue
            if name not in KNOWN_MODES:
                _report(ConfigValueError(field="mode", value=raw, default=None, reason="unknown mode ignored"))
                continue
            modes.append(name)

        if len(modes) > 1 and "none" in modes:
            _report(ConfigValueError(field="mode", value="none", default=None, reason="'none' combined with other modes"))
            modes.remove("none")
        return ",".join(modes) or "none"

    @field_validator("file_size_mb", "number_of_log_files", "queue_size", mode="before")
    @classmethod
    def _positive_int(cls, value: Any, info: ValidationInfo) -> int:
        default = cls.model_fields[info.field_name].default
        try:
            number = int(str(value).strip())
        except (TypeError, ValueError):
            _report(ConfigValueError(field=info.field_name, value=value, default=default, reason="not a number"))
            return default
        if number <= 0:
            _report(ConfigValueError(field=info.field_name, value=value, default=default, reason="must be positive"))
            return default
        return number

    @field_validator("network_port", mode="before")
    @classmethod
    def _port(cls, value: Any) -> int:
        try:
            port = int(str(value).strip())
        except (TypeError, ValueError):
            _report(ConfigValueError(field="network_port", value=value, default=0, reason="not a number"))
            return 0
        if not 0 <= port <= 65535:
            _report(ConfigValueError(field="network_port", value=value, default=0, reason="out of range"))
            return 0
        return port

    @field_validator("level", "flush_on", mode="before")
    @classmethod
    def _level(cls, value: Any, info: ValidationInfo) -> Level:
        default = cls.model_fields[info.field_name].default
        try:
            return Level.parse(value)
        except ValueError:
            _report(ConfigValueError(field=info.field_name, value=value, default=default.label, reason="unknown level"))
            return default

    @field_validator("udp_format", mode="before")
    @classmethod
    def _udp_format(cls, value: Any) -> str:
        fmt = str(value).strip().lower()
        if fmt not in ("json", "plain"):
            _report(ConfigValueError(field="udp_format", value=value, default="json", reason="expected json or plain"))
            return "json"
        return fmt

    @field_validator("console_color", mode="before")
    @classmethod
    def _blank_color(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


def _report(error: ConfigValueError) -> None:
    logger.warning(str(error), code=error.code, **error.details)


__all__ = ["LoggerConfig", "DEFAULT_PATTERN", "DEFAULT_QUEUE_SIZE", "KNOWN_MODES", "UdpFormat"]
