"""
Configuration management for DoseTrack
"""

from typing import Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "DoseTrack"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENV: str = "development"

    # API
    API_PREFIX: str = "/api/v1"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite:///./dosetrack.db"
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20
    DATABASE_BUSY_TIMEOUT_SECONDS: float = 15.0

    # Auth
    AUTH_ENABLED: bool = True
    MIN_PASSWORD_LENGTH: int = 6
    PASSWORD_HASH_ITERATIONS: int = 200_000

    # Email (missed-dose alerts); disabled when SMTP_HOST is unset
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    EMAIL_FROM: Optional[str] = None

    # Proof photo storage; disabled when STORAGE_DIR is unset
    STORAGE_DIR: Optional[str] = None
    STORAGE_BASE_URL: str = "/files"

    # Timing
    OPERATION_TIMEOUT_SECONDS: float = 8.0
    REFRESH_INTERVAL_SECONDS: float = 30.0
    REMINDER_CHECK_INTERVAL_SECONDS: float = 300.0
    SWEEP_WINDOW_MINUTES: int = 15

    # Scheduler secret for the sweep endpoint; the endpoint is closed when unset
    SWEEP_TOKEN: Optional[str] = None

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


class TimeSlotConfig:
    """Named time slots and their deadlines in minutes since midnight"""

    MORNING_DEADLINE: int = 9 * 60            # 09:00
    AFTERNOON_DEADLINE: int = 13 * 60 + 30    # 13:30
    EVENING_DEADLINE: int = 17 * 60           # 17:00
    NIGHT_DEADLINE: int = 21 * 60             # 21:00

    DEFAULT_SLOT: str = "Morning"
    STREAK_LOOKBACK_DAYS: int = 30


# Database table names
class TableNames:
    ACCOUNTS = "accounts"
    AUTH_SESSIONS = "auth_sessions"
    MEDICATIONS = "medications"
    MEDICATION_LOGS = "medication_logs"
    NOTIFICATIONS = "notifications"


settings = get_settings()
time_slot_config = TimeSlotConfig()
