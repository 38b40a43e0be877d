"""Environment-driven configuration for the concept map editor."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class EditorConfig(BaseSettings):
    """
    Editor settings, overridable through CONCEPT_MAP_* environment variables.

    debounce_delay is in seconds; it is the quiet period after the last
    continuous edit (label typing, colour drag, notes) before a history
    entry is committed.
    """

    debounce_delay: float = 0.5
    max_history: int | None = 100
    default_title: str = "Concept Map"
    default_view_mode: str = "free-flow"
    log_level: str = "INFO"

    # REST surface
    host: str = "127.0.0.1"
    port: int = 8765
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    model_config = {"env_prefix": "CONCEPT_MAP_", "env_file": ".env", "extra": "ignore"}


@lru_cache
def get_config() -> EditorConfig:
    """Return the process-wide configuration (read once)."""
    return EditorConfig()
