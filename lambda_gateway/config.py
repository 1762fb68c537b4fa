"""
Gateway configuration definition.

Loads process-wide defaults from environment variables.
Uses pydantic-settings for type safety and defaults; per-instance
options live in models/options.py.
"""

import sys
import tempfile
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseAppConfig(BaseSettings):
    """
    Common application settings.
    """

    LOG_LEVEL: str = Field(default="INFO", description="Log level")
    LOG_CONFIG_PATH: str = Field(
        default=str(Path(__file__).with_name("logging.yml")),
        description="YAML logging config path (basicConfig when missing)",
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )


class GatewayConfig(BaseAppConfig):
    """
    Configuration management for the Gateway emulator.
    """

    # Server settings
    GATEWAY_BIND_HOST: str = Field(default="127.0.0.1", description="Listen address")
    GATEWAY_SHUTDOWN_TIMEOUT: float = Field(
        default=5.0, description="Graceful shutdown timeout for listeners (seconds)"
    )

    # Worker settings
    GATEWAY_TMP_DIR: str = Field(
        default_factory=tempfile.gettempdir,
        description="Directory where the worker bootstrap is materialized",
    )
    GATEWAY_DEFAULT_MEMORY_SIZE: int = Field(
        default=128, description="Memory size (MB) reported in REPORT lines"
    )


# Load config as a singleton.
# pydantic-settings reads environment variables during instantiation.
try:
    config = GatewayConfig()
except Exception as e:
    sys.stderr.write(f"Failed to load configuration: {e}\n")
    raise
