"""
File Server Configuration
=========================

Typed settings for the listener, protocol limits, storage, auth backend,
ops API and logging.

Precedence (last wins):
    defaults  <  config.yaml  <  environment

The YAML file is FILE_SERVER_CONFIG if set, otherwise the first of
CONFIG_SEARCH_PATHS that exists.

Environment Variables:
    FILE_SERVER_HOST          -> server.host
    FILE_SERVER_PORT          -> server.port
    FILE_SERVER_BUFFER_SIZE   -> server.buffer_size
    FILE_SERVER_DATA_DIR      -> storage.data_dir
    FILE_SERVER_AUTH_URL      -> auth.base_url
    FILE_SERVER_AUTH_BACKEND  -> auth.backend
    FILE_SERVER_LOG_LEVEL     -> logging.level
    PORT                      -> ops.port (Cloud Run)

Example:
    from file_server.config import settings

    print(settings.server.port)
    print(settings.storage.data_dir)
    print(settings.auth.base_url)
"""

import os
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field

from file_server.upload.storage import DEFAULT_MIME_TYPES


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AppConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="file-server", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class ServerConfig(BaseModel):
    """Upload listener configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=11000, ge=0, le=65535, description="Bind port")
    buffer_size: int = Field(
        default=1048576,
        ge=1024,
        description="Per-connection receive buffer size in bytes",
    )
    drain_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Time in-flight uploads get to finish on shutdown",
    )


class ProtocolConfig(BaseModel):
    """WebSocket protocol limits."""

    require_mask: bool = Field(
        default=True,
        description="Reject client frames without a masking key",
    )
    max_frame_size: int = Field(
        default=268435456,
        ge=0,
        description="Largest accepted frame payload in bytes (0 = unlimited)",
    )
    health_check_user_agents: List[str] = Field(
        default_factory=lambda: ["ELB-HealthChecker", "GoogleHC", "kube-probe"],
        description="User-Agent markers of probes that get no handshake response",
    )


class StorageConfig(BaseModel):
    """Destination store configuration."""

    data_dir: str = Field(
        default="./data/uploads",
        description="Directory receiving uploaded files",
    )
    mime_types: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_MIME_TYPES),
        description="Accepted mime types and their file extensions",
    )
    keep_partial: bool = Field(
        default=False,
        description="Keep partially written files of failed uploads",
    )


class AuthConfig(BaseModel):
    """Authentication backend configuration."""

    backend: str = Field(
        default="http",
        description="Authentication backend: 'http' or 'mock'",
    )
    base_url: str = Field(
        default="http://localhost:5000",
        description="Root URL of the attachment service",
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout of a single authentication request",
    )
    verify_tls: bool = Field(default=True, description="Verify TLS certificates")


class OpsConfig(BaseModel):
    """Ops HTTP API (health, readiness, metrics) configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")
    progress_step_percent: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Percentage step between INFO progress lines",
    )


class Settings(BaseModel):
    """
    Main settings class for the upload server.

    One section per component; each can be set in config.yaml and
    partially overridden through FILE_SERVER_* variables.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    protocol: ProtocolConfig = Field(default_factory=ProtocolConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    ops: OpsConfig = Field(default_factory=OpsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

CONFIG_SEARCH_PATHS = (
    Path("config.yaml"),
    Path("config.yml"),
    Path("/etc/file-server/config.yaml"),
    Path(__file__).resolve().parents[2] / "config.yaml",
)

# (variable, section, key, type)
ENV_OVERRIDES: Tuple[Tuple[str, str, str, type], ...] = (
    ("FILE_SERVER_HOST", "server", "host", str),
    ("FILE_SERVER_PORT", "server", "port", int),
    ("FILE_SERVER_BUFFER_SIZE", "server", "buffer_size", int),
    ("FILE_SERVER_DATA_DIR", "storage", "data_dir", str),
    ("FILE_SERVER_AUTH_URL", "auth", "base_url", str),
    ("FILE_SERVER_AUTH_BACKEND", "auth", "backend", str),
    ("FILE_SERVER_LOG_LEVEL", "logging", "level", str),
    ("PORT", "ops", "port", int),
)


def find_config_file() -> Optional[Path]:
    """First existing file among FILE_SERVER_CONFIG and the search paths."""
    if explicit := os.environ.get("FILE_SERVER_CONFIG"):
        return Path(explicit)
    return next((path for path in CONFIG_SEARCH_PATHS if path.is_file()), None)


def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Build Settings from defaults, the YAML file and the environment.

    Args:
        config_path: Explicit YAML path. When None, FILE_SERVER_CONFIG and
            CONFIG_SEARCH_PATHS are tried in order.

    Returns:
        Settings: Validated configuration

    Raises:
        pydantic.ValidationError: If a value is out of range
    """
    path = Path(config_path) if config_path else find_config_file()

    raw: dict = {}
    if path is not None and path.is_file():
        logger.info(f"Reading configuration from {path}")
        raw = yaml.safe_load(path.read_text()) or {}
    else:
        logger.warning("No config.yaml found, using defaults and environment")

    _apply_env_overrides(raw)
    return Settings.model_validate(raw)


def _apply_env_overrides(raw: dict) -> None:
    """Write every set variable of ENV_OVERRIDES into the raw config tree."""
    for variable, section, key, cast in ENV_OVERRIDES:
        if value := os.environ.get(variable):
            raw.setdefault(section, {})[key] = cast(value)


TEXT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
JSON_LOG_FORMAT = (
    '{"time": "%(asctime)s", "level": "%(levelname)s", '
    '"logger": "%(name)s", "message": "%(message)s"}'
)


def setup_logging(settings: Settings) -> None:
    """Install the root handler with the configured level and format."""
    level = logging.getLevelName(settings.logging.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format=JSON_LOG_FORMAT if settings.logging.format == "json" else TEXT_LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Loaded on import so every module shares one configuration
settings = load_config()
setup_logging(settings)
