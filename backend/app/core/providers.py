import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class LLMProviderConfig(BaseModel):
    provider: str = "gemini"
    endpoint: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-1.5-flash"
    rag_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    web_temperature: float = Field(default=0.8, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=1000, ge=1)
    timeout_sec: int = Field(default=30, ge=1)


class ProvidersConfig(BaseModel):
    llm: LLMProviderConfig = Field(default_factory=LLMProviderConfig)

    model_config = {"extra": "ignore"}


_ENV_PATTERN = re.compile(r"\$\{[^}]+\}|\$[A-Za-z0-9_]+")


def _resolve_env_vars(data: Any) -> Any:
    if isinstance(data, dict):
        return {key: _resolve_env_vars(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_resolve_env_vars(value) for value in data]
    if isinstance(data, str):
        expanded = os.path.expandvars(data)
        if _ENV_PATTERN.search(expanded):
            msg = f"Environment variable not set for providers config value: {data}"
            raise ValueError(msg)
        return expanded
    return data


def load_providers_config(path: Path) -> ProvidersConfig:
    content = path.read_text(encoding="utf-8")
    data: dict[str, Any] = yaml.safe_load(content) or {}
    resolved = _resolve_env_vars(data)
    return ProvidersConfig.model_validate(resolved)
