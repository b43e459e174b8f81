from datetime import tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.domain.scheduler_config import SchedulerConfig


class Settings(BaseSettings):
    app_env: str = "local"
    api_port: int = 8000
    log_level: str = "INFO"
    log_json: bool = True

    postgres_host: str = "127.0.0.1"
    postgres_port: int = 5432
    postgres_db: str = "retention_outreach"
    postgres_user: str = "outreach_user"
    postgres_password: str = "outreach_password"
    database_url_override: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL_OVERRIDE", "DATABASE_URL"),
    )
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_auto_create: bool = False
    db_seed_demo_data: bool = False

    outreach_autostart: bool = False
    outreach_max_concurrent_sessions: int = 3
    outreach_tick_interval_ms: int = 30000
    outreach_max_contacts_per_day: int = 1
    outreach_quiet_hours_start: int = 22
    outreach_quiet_hours_end: int = 8
    outreach_min_hours_between_contacts: float = 4
    outreach_timezone: str = ""

    cors_allowed_origins_raw: str = "http://127.0.0.1:5173,http://localhost:5173"
    trusted_hosts_raw: str = "127.0.0.1,localhost"
    force_https: bool = False

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def cors_allowed_origins(self) -> list[str]:
        return [
            origin.strip()
            for origin in self.cors_allowed_origins_raw.split(",")
            if origin.strip()
        ]

    @property
    def trusted_hosts(self) -> list[str]:
        return [
            host.strip() for host in self.trusted_hosts_raw.split(",") if host.strip()
        ]

    @property
    def local_timezone(self) -> tzinfo | None:
        if not self.outreach_timezone:
            return None
        return ZoneInfo(self.outreach_timezone)

    def scheduler_config(self) -> SchedulerConfig:
        return SchedulerConfig(
            enabled=False,
            max_concurrent_sessions=self.outreach_max_concurrent_sessions,
            tick_interval_ms=self.outreach_tick_interval_ms,
            max_contacts_per_day=self.outreach_max_contacts_per_day,
            quiet_hours_start=self.outreach_quiet_hours_start,
            quiet_hours_end=self.outreach_quiet_hours_end,
            min_hours_between_contacts=self.outreach_min_hours_between_contacts,
        )

    def validate_security_settings(self) -> None:
        if self.app_env.lower() != "production":
            return

        if not self.cors_allowed_origins:
            raise ValueError(
                "CORS_ALLOWED_ORIGINS_RAW must define explicit origins in production."
            )
        if "*" in self.cors_allowed_origins:
            raise ValueError("Wildcard CORS origin is not allowed in production.")
        if not self.trusted_hosts:
            raise ValueError(
                "TRUSTED_HOSTS_RAW must define explicit hosts in production."
            )
        if "*" in self.trusted_hosts:
            raise ValueError("Wildcard trusted host is not allowed in production.")
        if self.db_auto_create:
            raise ValueError("DB_AUTO_CREATE must be disabled in production; use Alembic.")


@lru_cache
def get_settings() -> Settings:
    return Settings()
