from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database
    database_url: str

    # JWT
    jwt_secret: str
    jwt_alg: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Redis (message broker + shared rate limit counters)
    redis_host: str = "localhost"
    redis_port: int = 6379

    # Trading
    trade_ttl_days: int = 7
    trade_creation_limit: int = 10
    trade_acceptance_limit: int = 20
    rate_limit_window_seconds: int = 3600
    rate_limit_backend: str = "memory"  # memory / redis

    # Expiry sweeper
    sweep_enabled: bool = True
    sweep_interval_seconds: int = 3600

    notifications_enabled: bool = True
    log_level: str = "INFO"

    @field_validator("database_url")
    @classmethod
    def normalise_postgres_scheme(cls, v: str) -> str:
        # Some hosts still hand out postgres:// URLs
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator("rate_limit_backend")
    @classmethod
    def check_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("memory", "redis"):
            raise ValueError("rate_limit_backend must be 'memory' or 'redis'")
        return v


settings = Settings()
