"""Application settings loaded from the environment (and an optional .env file)."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() not in ("false", "0", "no", "off")


class LLMSettings(BaseModel):
    """Connection settings for the Ollama-compatible text generation backend."""

    base_url: str = "http://localhost:11434"
    model: str = "mistral"
    enabled: bool = True
    # First request after a cold start can take 30+ seconds while the model loads
    timeout_seconds: float = 60.0
    temperature: float = 0.2
    top_p: float = 0.9


class Settings(BaseModel):
    database_url: str = "sqlite:///./homework.db"
    secret_key: str = "CHANGE_ME_TO_A_RANDOM_SECRET"
    log_level: str = "INFO"
    # Email-only teacher login, meant for local development
    dev_login_enabled: bool = True
    llm: LLMSettings = Field(default_factory=LLMSettings)


def load_settings() -> Settings:
    """Build a Settings object from environment variables."""
    load_dotenv()

    llm = LLMSettings(
        base_url=os.getenv("OLLAMA_API_URL", LLMSettings().base_url),
        model=os.getenv("OLLAMA_MODEL", LLMSettings().model),
        enabled=_env_flag("OLLAMA_ENABLED", True),
        timeout_seconds=float(os.getenv("OLLAMA_TIMEOUT_SECONDS", "60")),
    )
    return Settings(
        database_url=os.getenv("DATABASE_URL", Settings().database_url),
        secret_key=os.getenv("SECRET_KEY", Settings().secret_key),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        dev_login_enabled=_env_flag("DEV_LOGIN_ENABLED", True),
        llm=llm,
    )


settings = load_settings()
