"""Runtime settings, read from the environment and `.env` via pydantic-settings.

    JWT_SECRET            required, token signing key with no default
    DATA_DIR              JSON collection directory (default ./data)
    LLM_PROVIDER          "http" (default) or "echo"
    LLM_BASE_URL          chat-completion base URL (required for "http")
    LLM_API_KEY           bearer token for the backend
    LLM_MODEL             model identifier
    LLM_MAX_TOKENS        completion cap (default 1000)
    LLM_TEMPERATURE       sampling temperature (default 0.7)
    LLM_TIMEOUT           HTTP timeout in seconds (default 120)
    LLM_CONTEXT_MESSAGES  history turns sent with each request (default 10)
    COOKIE_SECURE         mark the session cookie Secure (default false)
    BCRYPT_ROUNDS         password hash cost (default 12)
    LOG_LEVEL             DEBUG, INFO, WARNING, ERROR or CRITICAL (default INFO)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Mapping

from pydantic import ValidationError as PydanticValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from character_chat.errors import ConfigError
from character_chat.llm import LLM, EchoLLM, HttpLLM

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"
ENV_FILE = Path(__file__).parent.parent / ".env"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=ENV_FILE, env_ignore_empty=True, extra="ignore")

    jwt_secret: str
    data_dir: Path = DEFAULT_DATA_DIR
    llm_provider: Literal["http", "echo"] = "http"
    llm_base_url: str = ""
    llm_api_key: str = ""
    llm_model: str = ""
    llm_max_tokens: int = 1000
    llm_temperature: float = 0.7
    llm_timeout: float = 120.0
    llm_context_messages: int = 10
    cookie_secure: bool = False
    bcrypt_rounds: int = 12
    log_level: LogLevel = "INFO"

    @field_validator("jwt_secret")
    @classmethod
    def secret_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings. Fails hard on a missing secret or an unusable value.

    With no `environ`, pydantic-settings reads os.environ and `.env`. An
    explicit mapping is used on its own, ignoring both.
    """
    try:
        if environ is None:
            settings = Settings()
        else:
            raw = {
                key.lower(): value for key, value in environ.items()
                if key.lower() in Settings.model_fields and value != ""
            }
            settings = Settings.model_validate(raw)
    except PydanticValidationError as e:
        if any(err["loc"][:1] == ("jwt_secret",) for err in e.errors()):
            raise ConfigError("JWT_SECRET is not set; refusing to start without a signing key") from e
        raise ConfigError(f"Invalid configuration: {e}") from e

    if settings.llm_provider == "http" and not settings.llm_base_url:
        raise ConfigError("LLM_BASE_URL is required when LLM_PROVIDER=http")
    return settings


def build_llm(settings: Settings) -> LLM:
    if settings.llm_provider == "echo":
        return EchoLLM()
    return HttpLLM(
        base_url=settings.llm_base_url,
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        max_tokens=settings.llm_max_tokens,
        temperature=settings.llm_temperature,
        timeout=settings.llm_timeout,
    )
