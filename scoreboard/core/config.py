from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Classroom Scoreboard API"
    app_env: str = "dev"
    app_version: str = "0.1.0"
    api_v1_prefix: str = ""

    jwt_secret: str = "change_me"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 8 * 60

    database_url: str = "sqlite+pysqlite:///./data/scoreboard.db"

    dataset_path: str = "./data/scoreboard.json"

    sync_endpoint_url: str | None = None  # Apps Script web app URL, ends with /exec
    sync_timeout_seconds: float = 15.0
    sync_on_startup: bool = True

    milestone_interval: int = 25

    @property
    def dataset_file(self) -> Path:
        return Path(self.dataset_path).resolve()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    get_settings.cache_clear()
