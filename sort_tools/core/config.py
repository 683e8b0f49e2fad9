"""Runtime configuration."""

from pathlib import Path

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings

from .types import ConflictStrategy


class Settings(BaseSettings):
    """Settings loaded from ``SORT_TOOLS_*`` environment variables."""

    # Scheduling
    concurrency: int = Field(default=5, ge=1)
    max_attempts: int = Field(default=3, ge=1)
    retry_base_delay_ms: int = Field(default=1000, ge=0)
    retry_max_delay_ms: int = Field(default=10000, ge=0)
    oracle_timeout_seconds: float = 30.0

    # Scanning
    max_files: int = Field(default=10000, ge=1)

    # Organizing
    conflict_strategy: ConflictStrategy = ConflictStrategy.RENAME
    use_subcategories: bool = True

    # Storage
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".sort-tools")

    @property
    def cache_path(self) -> Path:
        """SQLite file backing the result cache."""
        return self.data_dir / "cache.db"

    @property
    def history_path(self) -> Path:
        """JSON document holding the operation journal."""
        return self.data_dir / "history.json"

    @property
    def telemetry_dir(self) -> Path:
        """Directory for unknown-error reports."""
        return self.data_dir / "telemetry"

    def retry_delay_seconds(self, attempt: int) -> float:
        """Backoff before the attempt following ``attempt`` (1-based)."""
        delay_ms = min(self.retry_base_delay_ms * attempt, self.retry_max_delay_ms)
        return delay_ms / 1000.0

    model_config = ConfigDict(
        env_prefix="SORT_TOOLS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


def get_settings() -> Settings:
    """Build a fresh settings object from the current environment."""
    return Settings()
