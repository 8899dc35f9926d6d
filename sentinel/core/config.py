from pydantic_settings import BaseSettings
from pydantic import Field, field_validator, model_validator
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from typing import Dict
import json


MANUAL_DURATION_POLICIES = ("longer_wins", "caller_wins")
SWEEP_LOCK_BACKENDS = ("redis", "local")
# backends whose partial indexes keep one active ban per identity
SUPPORTED_DATABASE_BACKENDS = ("postgresql", "sqlite")


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./sentinel.db"
    DB_POOL_SIZE: int = Field(default=10, ge=1)
    DB_MAX_OVERFLOW: int = Field(default=5, ge=0)
    DB_POOL_TIMEOUT: int = Field(default=10, ge=1)  # seconds waiting for a pooled connection
    DB_POOL_RECYCLE: int = 3600
    DB_STATEMENT_TIMEOUT_MS: int = Field(default=5000, ge=0)

    # Environment
    ENVIRONMENT: str = "development"

    DEBUG: bool = False

    # Celery & Redis (Task Queue)
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"

    # Revocations
    SWEEP_INTERVAL_SECONDS: int = 60
    SWEEP_LOCK_BACKEND: str = "redis"  # "local" only guards a single process
    SWEEP_LOCK_KEY: str = "sentinel:sweep-lock"
    MANUAL_DURATION_POLICY: str = "longer_wins"
    LOGIN_FAIL_OPEN: bool = True
    SEED_BAN_REASONS: str = ""  # JSON object or "name=seconds,name=seconds"

    @field_validator("ENVIRONMENT")
    @classmethod
    def normalize_environment(cls, value: str) -> str:
        return value.lower().strip()

    @field_validator("MANUAL_DURATION_POLICY")
    @classmethod
    def validate_manual_duration_policy(cls, value: str) -> str:
        normalized = value.lower().strip()
        if normalized not in MANUAL_DURATION_POLICIES:
            raise ValueError(
                f"MANUAL_DURATION_POLICY must be one of {', '.join(MANUAL_DURATION_POLICIES)}"
            )
        return normalized

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_backend(cls, value: str) -> str:
        try:
            backend = make_url(value).get_backend_name()
        except ArgumentError as exc:
            raise ValueError(f"DATABASE_URL is not a valid database URL: {value}") from exc
        if backend not in SUPPORTED_DATABASE_BACKENDS:
            raise ValueError(
                f"DATABASE_URL backend must be one of {', '.join(SUPPORTED_DATABASE_BACKENDS)}, got {backend}"
            )
        return value

    @field_validator("SWEEP_LOCK_BACKEND")
    @classmethod
    def validate_sweep_lock_backend(cls, value: str) -> str:
        normalized = value.lower().strip()
        if normalized not in SWEEP_LOCK_BACKENDS:
            raise ValueError(f"SWEEP_LOCK_BACKEND must be one of {', '.join(SWEEP_LOCK_BACKENDS)}")
        return normalized

    @field_validator("SWEEP_INTERVAL_SECONDS")
    @classmethod
    def validate_sweep_interval(cls, value: int) -> int:
        if value < 1:
            raise ValueError("SWEEP_INTERVAL_SECONDS must be at least 1")
        return value

    @classmethod
    def _parse_reason_seed(cls, value) -> Dict[str, int]:
        if isinstance(value, dict):
            return {str(name).strip(): int(seconds) for name, seconds in value.items()}
        raw = (value or "").strip()
        if not raw:
            return {}
        if raw.startswith("{"):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise ValueError("SEED_BAN_REASONS must be valid JSON or name=seconds pairs") from exc
            if not isinstance(parsed, dict):
                raise ValueError("SEED_BAN_REASONS JSON must be an object")
            return cls._parse_reason_seed(parsed)
        seeds = {}
        for pair in raw.split(","):
            if not pair.strip():
                continue
            name, sep, seconds = pair.partition("=")
            if not sep or not name.strip():
                raise ValueError(f"Invalid reason seed entry: {pair.strip()}")
            try:
                seeds[name.strip()] = int(seconds.strip())
            except ValueError as exc:
                raise ValueError(f"Invalid duration for reason seed: {pair.strip()}") from exc
        return seeds

    @field_validator("SEED_BAN_REASONS")
    @classmethod
    def validate_seed_ban_reasons(cls, value: str) -> str:
        seeds = cls._parse_reason_seed(value)
        for name, seconds in seeds.items():
            if seconds < 0:
                raise ValueError(f"Reason duration must not be negative: {name}")
        return value

    @model_validator(mode="after")
    def validate_production_database(self):
        if self.ENVIRONMENT == "production" and self.DATABASE_URL.startswith("sqlite"):
            raise ValueError("DATABASE_URL must point to a server database in production")
        return self

    @property
    def seed_ban_reasons(self) -> Dict[str, int]:
        return self._parse_reason_seed(self.SEED_BAN_REASONS)

    @property
    def sweep_time_limit(self) -> int:
        """Hard limit for one sweep run; also how long a sweep lock may be held."""
        return max(self.SWEEP_INTERVAL_SECONDS, 30)

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()
