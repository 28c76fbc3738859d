"""Application configuration via Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

# Resolve .env from backend/ regardless of CWD
_ENV_FILE = Path(__file__).resolve().parents[3] / ".env"


class Settings(BaseSettings):
    """Central configuration loaded from environment variables / .env file."""

    # Database (backs the key-value store)
    database_url: str = "sqlite+aiosqlite:///./pohi_platform.db"

    # AI
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    ai_temperature: float = 0.4
    ai_timeout_seconds: float = 120.0
    prompt_language: str = "English"
    max_items_per_prompt: int = 7

    # Marketplace policy
    commission_rate: float = 0.05
    truck_capacity_m3: float = Field(25.0, gt=0)

    # CORS / Frontend
    cors_origins: str = "http://localhost:5173"

    # General
    debug: bool = True

    model_config = {"env_file": str(_ENV_FILE), "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list.

        In debug mode, returns ["*"] to allow any origin.
        """
        if self.debug:
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def ai_enabled(self) -> bool:
        return bool(self.gemini_api_key.strip())


@lru_cache
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()
