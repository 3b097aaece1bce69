# backend/courtbook/core/config.py
from decimal import Decimal
import logging
import os
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Deployment environment name",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./courtbook.db",
        description="SQLAlchemy URL of the authoritative relational store",
    )
    database_echo: bool = False
    db_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts for transient storage failures before surfacing 503",
    )
    sqlite_busy_timeout_seconds: float = 15.0
    db_pool_size: int = Field(default=5, ge=1)
    db_max_overflow: int = Field(default=10, ge=0)

    # Redis (optional, best-effort resource mutex)
    redis_url: Optional[str] = Field(default=None, description="Redis URL for resource locks")
    redis_namespace: str = "courtbook"
    resource_lock_ttl_seconds: int = Field(default=30, ge=1)

    # Scheduling
    slot_granularity_minutes: int = Field(default=60, ge=5)
    booking_unit_minutes: int = Field(
        default=30,
        ge=5,
        description="Minimum addressable booking unit; starts and durations align to it",
    )
    max_probe_duration_minutes: int = Field(default=240, ge=30)
    probe_step_minutes: int = Field(default=30, ge=5)

    # Tokens
    token_usd_rate: Decimal = Field(
        default=Decimal("0.007"),
        gt=0,
        description="Fixed cash value of one token in USD",
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        env_prefix="COURTBOOK_",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("booking_unit_minutes")
    @classmethod
    def _unit_divides_hour(cls, value: int) -> int:
        if 60 % value != 0:
            raise ValueError("booking_unit_minutes must divide 60")
        return value


settings = Settings()
