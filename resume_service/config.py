from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "resume-service"
    # No default: the service refuses to start without a signing secret.
    jwt_secret: str = Field(min_length=1, validation_alias=AliasChoices("JWT_SECRET", "JST_SECRET"))
    host: str = "0.0.0.0"
    port: int = 3000
    uploads_dir: str = "uploads"
    max_upload_size_bytes: int = 10 * 1024 * 1024
    token_ttl_seconds: int = 3600
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


@lru_cache
def get_settings() -> Settings:
    return Settings()
