"""Application configuration for the ExamGate service."""
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    DEBUG: bool = Field(default=False, description="Enable FastAPI debug mode")
    ADMIN_USERNAME: str = Field(default="admin", description="Admin login name")
    ADMIN_PASSWORD: str = Field(
        default="change-me", description="Shared admin password for HTTP Basic auth"
    )
    STORE_BACKEND: Literal["sql", "memory"] = Field(
        default="sql", description="Persistence backend for config and sessions"
    )
    DATABASE_URL: str = Field(
        default="sqlite:///./examgate.db",
        description="SQLAlchemy database URL used by the sql backend",
    )
    EXAM_PAGE_PATH: str = Field(
        default="/exam.html", description="Candidate page the generated links point to"
    )
    OPENAI_API_KEY: str = Field(default="", description="API key for the writing scorer")
    SCORER_URL: str = Field(
        default="https://api.openai.com/v1/responses",
        description="Endpoint of the external text-scoring API",
    )
    SCORER_MODEL: str = Field(default="gpt-4.1-mini", description="Model used for scoring")
    SCORER_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0, description="Scorer request timeout")

    model_config = {
        "env_file": ".env",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""
    return Settings()
