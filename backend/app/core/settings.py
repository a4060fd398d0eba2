from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class AppSettings(BaseSettings):
    app_name: str = "BIOSPACE Chat Relay"
    app_version: str = "0.1.0"
    providers_config_path: Path = Field(
        default=Path("config/providers.yaml"), env="PROVIDERS_CONFIG_PATH"
    )
    gemini_api_key: str | None = Field(default=None, env="GEMINI_API_KEY")
    request_timeout_sec: float = Field(default=30.0, env="REQUEST_TIMEOUT_SEC")
    fallback_token_delay_ms: float = Field(
        default=30.0, ge=0, env="FALLBACK_TOKEN_DELAY_MS"
    )
    # NoDecode hands the raw comma-separated env value to the validator below.
    cors_allowed_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["*"], env="CORS_ALLOWED_ORIGINS"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def has_gemini_credential(self) -> bool:
        return bool(self.gemini_api_key and self.gemini_api_key.strip())

    @field_validator("cors_allowed_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, value: list[str] | str | None) -> list[str]:
        if value is None:
            return ["*"]
        if isinstance(value, list):
            return value or ["*"]
        if isinstance(value, str):
            candidates = [origin.strip() for origin in value.split(",")]
            cleaned = [origin for origin in candidates if origin]
            return cleaned or ["*"]
        raise TypeError("cors_allowed_origins must be a list or comma separated string.")


@lru_cache
def get_settings() -> AppSettings:
    return AppSettings()
