import logging
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_prefix="POSBRIDGE_", env_file=".env", extra="ignore")

    # Default printer endpoint (raw TCP, usually port 9100)
    printer_host: str = "127.0.0.1"
    printer_port: int = Field(9100, ge=1, le=65535)

    # Print head width in dots (576 for 80mm paper, 384 for 58mm)
    dot_width: int = Field(576, gt=0)
    image_mode: Literal["raster", "strip"] = "raster"

    # Seconds; None disables the bound
    connect_timeout: float | None = 10.0
    send_timeout: float | None = 30.0

    log_level: str = "INFO"


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get application settings.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the service and CLI.

    Args:
        level: Log level name. Falls back to the configured ``log_level``.
    """
    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
