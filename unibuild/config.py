"""Runtime configuration — env-driven via pydantic-settings.

Reads from a .env file and UNIBUILD_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class UnibuildSettings(BaseSettings):
    """Settings shared by the orchestrator and the CLI.

    Examples
    --------
    Override via environment::

        export UNIBUILD_LOG_LEVEL=DEBUG
        export UNIBUILD_REPOSITORY_PATH=/data/unibuild/repository
        export UNIBUILD_CACHE_DB_PATH=/data/unibuild/cache.db
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="UNIBUILD_",
        env_file_encoding="utf-8",
    )

    log_level: str = "INFO"
    debug: bool = False

    # Working directories for resolved sources, one per fingerprint
    work_dir: Path = Path(".unibuild/projects")
    # Durable, content-addressed artifact repository
    repository_path: Path = Path(".unibuild/repository")
    # Optional SQLite store for extraction/build outcomes (in-memory if unset)
    cache_db_path: Path | None = None

    # Parallel per-part extraction/build inside an assembly (1 = sequential)
    max_workers: int = 1

    git_command: str = "git"


# Module-level instance — import as `from unibuild.config import settings`
settings = UnibuildSettings()
