import logging
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    env: str = "development"
    log_level: str = "info"
    refresh_interval: float = Field(default=60.0, gt=0)
    lookup_timeout: float | None = Field(default=5.0, gt=0)
    lookup_backend: Literal["system", "dns"] = "system"

    model_config = {"env_prefix": "KHS_", "env_file": ".env", "extra": "ignore"}

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        level = logging.getLevelNamesMapping().get(v.upper())
        if level is None:
            raise ValueError(f"Invalid log level: {v!r}. Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return v


settings = Settings()
