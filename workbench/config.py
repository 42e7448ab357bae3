"""Workbench configuration loaded from environment variables.

Uses ``pydantic-settings`` for automatic env-var loading, type coercion,
and ``.env`` file support.  Only the server entry point reads the
module-level ``settings``; every component receives its values through
constructor arguments.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

VERSION = "0.1.0"


class Settings(BaseSettings):
    """Workbench settings -- sourced from environment / ``.env`` file.

    PROJECT_REPO and GITHUB_TOKEN are only needed by ``start_work``
    (remote URL rewrite); they may stay blank otherwise.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    WORKSPACE_ROOT: str = "/workspace/project"

    # -- remote credentials (start_work only) --
    PROJECT_REPO: str = ""
    GITHUB_TOKEN: str = ""
    GIT_REMOTE: str = "origin"

    # Empty -> "npm" ("npm.cmd" on Windows)
    NPM_COMMAND: str = ""

    # -------------------------------------------------------------------------
    # Subprocess ceilings.  0 disables the limit.
    # -------------------------------------------------------------------------
    COMMAND_TIMEOUT_S: float = Field(default=600.0, ge=0)
    MAX_CAPTURE_BYTES: int = Field(default=5_000_000, ge=0)

    # Tail length of each stream in formatted tool output
    OUTPUT_MAX_LINES: int = Field(default=300, ge=1)

    # Canonicalise symlinks before the workspace containment check
    RESOLVE_SYMLINKS: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    @property
    def timeout_s(self) -> float | None:
        return self.COMMAND_TIMEOUT_S or None

    @property
    def max_capture_bytes(self) -> int | None:
        return self.MAX_CAPTURE_BYTES or None


def validate_settings(s: Settings) -> list[str]:
    """Return a list of problems that prevent the server from starting."""
    problems: list[str] = []
    root = Path(s.WORKSPACE_ROOT)
    if not root.exists():
        problems.append(f"WORKSPACE_ROOT does not exist: {s.WORKSPACE_ROOT}")
    elif not root.is_dir():
        problems.append(f"WORKSPACE_ROOT is not a directory: {s.WORKSPACE_ROOT}")
    return problems


settings = Settings()
