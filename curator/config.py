"""Region Curator application configuration using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Region Curator application settings.

    All fields can be overridden via environment variables with
    the CURATOR_ prefix (e.g., CURATOR_DB_PATH).
    """

    db_path: Path = Path("data/curator.duckdb")
    workspace_dir: str = "data/workspace"  # local dir, gs://... or s3://...
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    min_drag_size: float = 2.0  # device units along either axis before a press becomes a drag
    default_max_depth: int = 2
    behind_proxy: bool = False  # Set CURATOR_BEHIND_PROXY=true in Docker

    model_config = {
        "env_prefix": "CURATOR_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (singleton)."""
    return Settings()
