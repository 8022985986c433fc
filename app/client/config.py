from functools import lru_cache

import httpx
from pydantic_settings import BaseSettings, SettingsConfigDict

API_PREFIX = "/api"


class ClientSettings(BaseSettings):
    api_base: str = "http://localhost:8080"
    storage_backend: str = "server"
    request_timeout_seconds: float = 30.0

    model_config = SettingsConfigDict(
        env_prefix="CHARTDB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def live_updates_enabled(self) -> bool:
        return self.storage_backend.strip().lower() == "server"


@lru_cache
def get_client_settings() -> ClientSettings:
    return ClientSettings()


def create_http_client(settings: ClientSettings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.api_base.rstrip("/"),
        headers={"Content-Type": "application/json"},
        timeout=settings.request_timeout_seconds,
    )
