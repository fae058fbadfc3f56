from functools import lru_cache
import logging
import math
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing or invalid."""
    pass


class CacheSettings(BaseSettings):
    """Cache configuration pulled from CACHE_* environment variables or .env file."""

    # How long a computed value stays fresh
    time_to_keep_seconds: float = 60.0

    # Label used in log lines and stats
    name: str = "timed_cache"

    # Emit DEBUG lines for every hit/miss/stale/wait event
    log_events: bool = False

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def validate_required(self) -> list[str]:
        """Validate cache settings.

        Returns a list of error messages for invalid settings.
        """
        errors: list[str] = []
        warnings: list[str] = []

        if not math.isfinite(self.time_to_keep_seconds):
            errors.append("CACHE_TIME_TO_KEEP_SECONDS must be a finite number")
        elif self.time_to_keep_seconds < 0:
            errors.append("CACHE_TIME_TO_KEEP_SECONDS cannot be negative")
        elif self.time_to_keep_seconds == 0:
            warnings.append("CACHE_TIME_TO_KEEP_SECONDS is 0, every read will recompute")

        if not self.name.strip():
            errors.append("CACHE_NAME is required but empty")

        for warning in warnings:
            logger.warning(f"Config warning: {warning}")

        return errors


def validate_config_on_startup(settings: CacheSettings) -> None:
    """Validate configuration and raise if any setting is invalid."""
    errors = settings.validate_required()

    if errors:
        logger.error("Cache configuration validation failed:")
        for error in errors:
            logger.error(f"  - {error}")
        raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

    logger.info("Cache configuration validated successfully")


@lru_cache
def get_settings() -> CacheSettings:
    return CacheSettings()
