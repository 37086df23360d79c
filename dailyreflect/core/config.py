import logging
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings
from pydantic import ConfigDict


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Engine calendar convention (single global timezone, not per user)
    ENGINE_TIMEZONE: str = "UTC"

    # Store access bounds
    STORE_TIMEOUT_SECONDS: float = 5.0
    CONFLICT_MAX_RETRIES: int = 3

    # Progress scoring
    DEFAULT_PROGRESS_WINDOW_DAYS: int = 30

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate engine configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("dailyreflect")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    problems = []
    try:
        ZoneInfo(cfg.ENGINE_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        problems.append(f"ENGINE_TIMEZONE={cfg.ENGINE_TIMEZONE!r} is not a known timezone")
    if cfg.STORE_TIMEOUT_SECONDS <= 0:
        problems.append("STORE_TIMEOUT_SECONDS must be positive")
    if cfg.CONFLICT_MAX_RETRIES < 0:
        problems.append("CONFLICT_MAX_RETRIES must not be negative")
    if cfg.DEFAULT_PROGRESS_WINDOW_DAYS <= 0:
        problems.append("DEFAULT_PROGRESS_WINDOW_DAYS must be positive")
    if not cfg.DATABASE_URL:
        log.warning("DATABASE_URL not set; using in-memory stores")

    if problems:
        message = f"Invalid configuration: {'; '.join(problems)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)
        return False

    return True


def engine_timezone(settings_obj: Optional[Settings] = None) -> ZoneInfo:
    """Timezone used to turn event timestamps into calendar days."""
    cfg = settings_obj or settings
    try:
        return ZoneInfo(cfg.ENGINE_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")
