from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    # SQLite fallback for local development
    database_url: str = Field("sqlite:///./split_ledger.db", alias="DATABASE_URL")
    secret_key: str = Field("your_secret_key", alias="SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    default_currency: str = Field("USD", alias="DEFAULT_CURRENCY", min_length=3, max_length=3)
    log_level: str = Field("INFO", alias="LOG_LEVEL")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
