from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "local"
    api_port: int = 8080

    postgres_host: str = "127.0.0.1"
    postgres_port: int = 5432
    postgres_db: str = "chartdb"
    postgres_user: str = "chartdb"
    postgres_password: str = "chartdb_password"
    database_url_override: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL_OVERRIDE", "DATABASE_URL"),
    )
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_auto_create: bool = False

    realtime_heartbeat_seconds: float = 25.0
    realtime_queue_size: int = 100

    cors_allowed_origins_raw: str = "http://127.0.0.1:5173,http://localhost:5173"
    trusted_hosts_raw: str = "127.0.0.1,localhost"
    force_https: bool = False

    # Exposed to the editor through /config.js
    api_base: str = ""
    openai_api_key: str = ""
    openai_api_endpoint: str = ""
    llm_model_name: str = ""
    hide_chartdb_cloud: str = ""
    disable_analytics: str = ""
    static_dir: str | None = None

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

    def runtime_env(self) -> dict[str, str]:
        return {
            "OPENAI_API_KEY": self.openai_api_key,
            "OPENAI_API_ENDPOINT": self.openai_api_endpoint,
            "LLM_MODEL_NAME": self.llm_model_name,
            "HIDE_CHARTDB_CLOUD": self.hide_chartdb_cloud,
            "DISABLE_ANALYTICS": self.disable_analytics,
            "API_BASE": self.api_base,
        }

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
        if self.realtime_heartbeat_seconds <= 0:
            raise ValueError("REALTIME_HEARTBEAT_SECONDS must be positive.")


@lru_cache
def get_settings() -> Settings:
    return Settings()
