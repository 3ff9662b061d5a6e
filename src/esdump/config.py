from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Defaults for the CLI; every value can be overridden by a flag."""

    model_config = SettingsConfigDict(env_prefix="ESDUMP_", env_file=".env", extra="ignore")

    USERNAME: Optional[str] = None
    PASSWORD: Optional[str] = None
    REQUEST_TIMEOUT: float = 30.0
    VERIFY_CERTS: bool = True
    SCROLL_KEEPALIVE: str = "5m"
    PAGE_SIZE: int = 1000
    CONCURRENCY: int = 4
    LOG_LEVEL: str = "INFO"

    def client_options(self) -> dict:
        return {
            "request_timeout": self.REQUEST_TIMEOUT,
            "verify_certs": self.VERIFY_CERTS,
            "scroll_keepalive": self.SCROLL_KEEPALIVE,
        }


@lru_cache()
def get_settings() -> Settings:
    return Settings()
