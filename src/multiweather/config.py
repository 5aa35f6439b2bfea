# settings come from the environment, with an optional local .env for development
# in production, environment variables are injected by docker, kubernetes, cloud provider

from __future__ import annotations
from typing import Mapping, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        frozen=True,
    )

    # keys stay optional here, a missing one is reported by the client that needs it
    openweathermap_api_key: Optional[str] = Field(default=None, validation_alias="OPENWEATHERMAP_API_KEY")
    weatherapi_key: Optional[str] = Field(default=None, validation_alias="WEATHERAPI_KEY")
    openweathermap_base_url: str = Field(
        default="http://api.openweathermap.org", validation_alias="OPENWEATHERMAP_BASE_URL"
    )
    weatherapi_base_url: str = Field(default="http://api.weatherapi.com", validation_alias="WEATHERAPI_BASE_URL")
    timeout: float = Field(default=10.0, gt=0, allow_inf_nan=False, validation_alias="PROVIDER_TIMEOUT")
    max_retries: int = Field(default=0, ge=0, le=10, validation_alias="PROVIDER_RETRIES")
    max_workers: Optional[int] = Field(default=None, ge=1, validation_alias="PROVIDER_WORKERS")
    host: str = Field(default="0.0.0.0", validation_alias="MULTIWEATHER_HOST")
    port: int = Field(default=8080, ge=1, le=65535, validation_alias="MULTIWEATHER_PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"):
            raise ValueError(f"Unknown log level: {value}")
        return level

def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    # read os.environ and .env unless an explicit mapping is given, which tests use
    if env is None:
        return Settings()
    return Settings.model_validate(dict(env))
