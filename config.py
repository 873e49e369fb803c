import os
from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = os.path.join(os.path.dirname(__file__), ".env")


class AnonymizationLevel(str, Enum):
    NONE = "NONE"
    PARTIAL = "PARTIAL"
    FULL = "FULL"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=ENV_FILE, env_file_encoding="utf-8", extra="ignore")

    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_SECONDS: int = 86400

    # "Today" for daily codes is evaluated in this zone
    APP_TIMEZONE: str = "Europe/Istanbul"

    DAILY_CODE_MAX_USAGE: int = 2

    RUN_MIGRATIONS_ON_STARTUP: bool = True
    SCHEDULER_ENABLED: bool = True
    RETENTION_CRON_HOUR: int = Field(default=2, ge=0, le=23)
    RETENTION_CRON_MINUTE: int = Field(default=0, ge=0, le=59)

    ALLOWED_ORIGINS: str = "*"

    ENVIRONMENT: str = "development"

    @field_validator("DAILY_CODE_MAX_USAGE")
    @classmethod
    def validate_max_usage(cls, v):
        # One ENTRY and one EXIT per day; the counter bound is not tunable
        if v != 2:
            raise ValueError("DAILY_CODE_MAX_USAGE must be 2")
        return v


class IpTrackingSettings(BaseSettings):
    """
    Immutable IP tracking / privacy policy.
    Built once at startup and handed to the privacy guard and the retention job.
    """
    model_config = SettingsConfigDict(
        env_prefix="IP_TRACKING_",
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    enabled: bool = True
    privacy_enabled: bool = False
    anonymize_reports: bool = False
    audit_logging_enabled: bool = True
    retention_days: int = 365  # 0 = keep forever
    anonymization_level: AnonymizationLevel = AnonymizationLevel.PARTIAL
    ipv4_preserve_octets: int = Field(default=3, ge=1, le=4)
    ipv6_preserve_groups: int = Field(default=4, ge=1, le=8)
    mask_character: str = Field(default="x", min_length=1)
    capture_timeout_ms: int = Field(default=100, gt=0)

    @field_validator("anonymization_level", mode="before")
    @classmethod
    def normalize_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


settings = Settings()


@lru_cache
def get_ip_tracking_settings() -> IpTrackingSettings:
    return IpTrackingSettings()
