import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    openai_api_key: Optional[str] = Field(None, alias="OPENAI_API_KEY")
    text_model: str = Field("gpt-5-mini", alias="LEARNPATH_TEXT_MODEL")
    text_generation_mode: Literal["agent", "off"] = Field("agent", alias="LEARNPATH_TEXT_GENERATION_MODE")
    text_max_attempts: int = Field(3, ge=1, le=5, alias="LEARNPATH_TEXT_MAX_ATTEMPTS")
    text_backoff_seconds: float = Field(1.0, ge=0.0, alias="LEARNPATH_TEXT_BACKOFF_SECONDS")
    text_timeout_seconds: float = Field(30.0, gt=0.0, alias="LEARNPATH_TEXT_TIMEOUT_SECONDS")
    database_url: Optional[str] = Field(None, alias="LEARNPATH_DATABASE_URL")
    database_pool_size: int = Field(10, alias="LEARNPATH_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="LEARNPATH_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="LEARNPATH_DATABASE_ECHO")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()  # type: ignore[arg-type]
        if settings.openai_api_key and not os.getenv("OPENAI_API_KEY"):
            os.environ["OPENAI_API_KEY"] = settings.openai_api_key
        return settings
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
