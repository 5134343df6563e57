"""Application configuration management."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BIND = ":8080"
DEFAULT_SCRAPE_TIMEOUT_MS = 1000
DEFAULT_LABEL_NAME = "ae_source"


class ConfigError(RuntimeError):
    """Raised when the configuration cannot be turned into a runnable service."""


class NoTargetsConfigured(ConfigError):
    """Signalling that the target list is empty after filtering blank entries."""


class Settings(BaseSettings):
    """Raw settings read from the environment (``AGGREGATE_*``) and CLI overrides."""

    model_config = SettingsConfigDict(env_prefix="AGGREGATE_", extra="ignore")

    server_bind: str = Field(
        DEFAULT_BIND,
        description="Bind the HTTP server to this address e.g. 127.0.0.1:8080 or just :8080",
    )
    targets: str = Field(
        "",
        description="Comma separated list of targets e.g. http://localhost:8081/metrics,http://localhost:8082/metrics",
    )
    targets_scrape_timeout: int = Field(
        DEFAULT_SCRAPE_TIMEOUT_MS,
        gt=0,
        description="If a target metrics page does not respond within this many milliseconds then timeout",
    )
    targets_label: bool = Field(True, description="Add a label to metrics to show their origin target")
    targets_label_name: str = Field(
        DEFAULT_LABEL_NAME,
        min_length=1,
        description="Label name to use if a target name label is appended to metrics",
    )
    insecure_skip_verify: bool = Field(False, description="Disable verification of TLS certificates")
    verbose: bool = Field(False, description="Log more information")
    log_level: str = Field("INFO", description="Root logging level")


class ExporterConfig(BaseModel):
    """Resolved, immutable configuration handed to every component."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int
    bind: str
    targets: tuple[str, ...]
    timeout_ms: int
    label_enabled: bool = True
    label_name: str = DEFAULT_LABEL_NAME
    insecure_skip_verify: bool = False
    verbose: bool = False
    log_level: str = "INFO"


def split_targets(raw: str) -> list[str]:
    """Split a comma separated target list, dropping blank entries.

    Order and duplicates are preserved; the index of each entry is what
    ``/metrics?t=<index>`` selects.
    """

    return [item.strip() for item in raw.split(",") if item.strip()]


def parse_bind(bind: str) -> tuple[str, int]:
    """Split a ``host:port`` bind address; an empty host means all interfaces."""

    host, sep, port_text = bind.strip().rpartition(":")
    if not sep:
        raise ConfigError(f"Invalid bind address {bind!r}: expected host:port or :port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port = int(port_text)
    except ValueError as exc:
        raise ConfigError(f"Invalid port in bind address {bind!r}") from exc
    if not 0 <= port <= 65535:
        raise ConfigError(f"Port out of range in bind address {bind!r}")
    return host or "0.0.0.0", port


def resolve_config(settings: Settings) -> ExporterConfig:
    """Create the runtime configuration from raw settings."""

    targets = split_targets(settings.targets)
    if not targets:
        raise NoTargetsConfigured("No targets configured")

    host, port = parse_bind(settings.server_bind)
    log_level = "DEBUG" if settings.verbose else settings.log_level.upper()

    return ExporterConfig(
        host=host,
        port=port,
        bind=settings.server_bind,
        targets=tuple(targets),
        timeout_ms=settings.targets_scrape_timeout,
        label_enabled=settings.targets_label,
        label_name=settings.targets_label_name,
        insecure_skip_verify=settings.insecure_skip_verify,
        verbose=settings.verbose,
        log_level=log_level,
    )


def load_config(**overrides) -> ExporterConfig:
    """Read settings from the environment, apply non-``None`` overrides and resolve them."""

    values = {key: value for key, value in overrides.items() if value is not None}
    return resolve_config(Settings(**values))
