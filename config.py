"""Global configuration for Artificial Suspects: the client-side game orchestrator."""
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Centralised settings read from .env file automatically."""

    # ── Paths ──────────────────────────────────────────────
    PROJECT_ROOT: Path = Path(__file__).parent
    DATA_DIR: Path = Path(__file__).parent / "data" / "store"

    # ── Game server ───────────────────────────────────────
    API_URL: str = Field(default="http://localhost:8080", description="Base URL of the game server")
    HTTP_TIMEOUT: float = Field(default=30.0, description="Transport timeout in seconds")

    # ── Models ────────────────────────────────────────────
    DEFAULT_MODEL: str = "gpt-4o-mini"
    MODELS_ORDER_BY: str = "name"

    # ── Gradio ────────────────────────────────────────────
    GRADIO_PORT: int = 7860

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


# Singleton settings instance used by every module
settings = Settings()
