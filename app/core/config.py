import os
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.errors import ConfigurationError


class Settings(BaseSettings):
    """
    Application configuration settings.
    """
    model_config = SettingsConfigDict(env_prefix="CHAT_ORCHESTRATOR_", env_file=".env", extra="ignore")

    # Service Info
    service_name: str = "chat-orchestrator"
    environment: str = "local"
    log_level: str = "INFO"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # LLM (OpenAI)
    openai_api_key: str = ""
    openai_model: str = "gpt-3.5-turbo"
    chat_temperature: float = 0.7
    agent_temperature: float = 0.3
    max_tokens: int = 1000
    agent_max_iterations: int = 3

    # Persistence
    database_backend: Literal["auto", "sql", "postgrest", "none"] = "auto"
    database_url: str = ""
    postgrest_url: str = ""
    postgrest_service_key: str = ""

    # Conversation memory
    session_timezone: str = "UTC"
    history_limit: int = 10
    summary_history_limit: int = 20
    conversation_ttl_minutes: int = 30
    serialize_sessions: bool = True

    # Tools
    weather_api_key: str = ""
    weather_base_url: str = "https://api.openweathermap.org/data/2.5"
    weather_geo_url: str = "https://api.openweathermap.org/geo/1.0/direct"
    http_timeout_seconds: float = 10.0

    # Paths
    base_dir: str = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    prompts_dir: str = os.path.join(base_dir, "prompts")

    def resolved_backend(self) -> str:
        """Pick the persistence backend once, from configuration only."""
        if self.database_backend != "auto":
            return self.database_backend
        if self.postgrest_url and self.postgrest_service_key:
            return "postgrest"
        if self.database_url:
            return "sql"
        return "none"


def validate_settings(settings: Settings) -> None:
    """
    Fail fast on settings the process cannot run without.

    Only called at startup; never mid-request.

    Raises:
        ConfigurationError: naming every missing or invalid setting
    """
    problems = []

    if not settings.openai_api_key:
        problems.append("openai_api_key is required")

    backend = settings.resolved_backend()
    if backend == "sql" and not settings.database_url:
        problems.append("database_url is required for the sql backend")
    if backend == "postgrest" and not (settings.postgrest_url and settings.postgrest_service_key):
        problems.append("postgrest_url and postgrest_service_key are required for the postgrest backend")

    try:
        ZoneInfo(settings.session_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        problems.append(f"unknown session_timezone: {settings.session_timezone!r}")

    if settings.agent_max_iterations < 1:
        problems.append("agent_max_iterations must be at least 1")

    if problems:
        raise ConfigurationError("; ".join(problems))


settings = Settings()
