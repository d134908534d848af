from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_IAPTIC_URL = "https://validator.iaptic.com"

_ENV_FILE = Path.cwd() / ".env"


class Settings(BaseSettings):
    type: str = "stripe"
    app_name: str = ""
    api_key: str = ""          # public API key of the app on iaptic.com
    stripe_public_key: str = ""
    custom_iaptic_url: str | None = None
    storage_path: Path | None = None   # None → in-memory store
    storage_prefix: str = "iaptic_"

    model_config = SettingsConfigDict(
        env_prefix="IAPTIC_",
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def base_url(self) -> str:
        if self.custom_iaptic_url:
            return self.custom_iaptic_url.rstrip("/")
        return DEFAULT_IAPTIC_URL


@lru_cache
def get_settings() -> Settings:
    return Settings()
