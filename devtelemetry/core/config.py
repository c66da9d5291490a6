# devtelemetry/core/config.py
"""
Central configuration for the telemetry core.

A single `settings` object (Pydantic BaseSettings) reads configuration from
environment variables and a local `.env` file.

Everything the core reads from disk hangs off PROJECT_ROOT:
- var/log/*.log                         -> tailed log files
- var/server-stats-<app-slug>.json      -> application stats snapshot
- var/runtime-stats-<app-slug>.json     -> runtime-engine stats snapshot
"""

from __future__ import annotations

import os
import re
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables and optional `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # -----------------------
    # Runtime
    # -----------------------
    ENV: str = Field(default="dev", description="Environment: dev|test|prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level (e.g., INFO, DEBUG)")
    APP_NAME: str = Field(default="devtelemetry", description="Application name reported in meta and stats file names")
    APP_VERSION: str = Field(default="0.1.0", description="Version reported in meta")

    # -----------------------
    # API / CORS
    # -----------------------
    CORS_ALLOW_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins for the dashboard frontend",
    )

    # -----------------------
    # Filesystem layout
    # -----------------------
    PROJECT_ROOT: str = Field(default=".", description="Root directory holding var/")
    LOG_DIR: Optional[str] = Field(
        default=None,
        description="Directory of tailed log files (defaults to <PROJECT_ROOT>/var/log)",
    )
    LOG_FILE_EXTENSION: str = Field(default="log", description="Extension marking a file as a log")
    LOG_SOURCE_EXTENSIONS: List[str] = Field(
        default_factory=lambda: ["py"],
        description=(
            "Source extensions recognized as file context in log lines. "
            "Empty accepts any alphabetic extension, which also matches host names like db.example.com"
        ),
    )

    # -----------------------
    # Tail / history limits
    # -----------------------
    DEFAULT_LOG_LINES: int = Field(default=100, ge=1, le=10000, description="Lines returned by default")
    PROFILER_EVENT_LIMIT: int = Field(default=50, ge=1, le=1000, description="Events returned by default")
    TAIL_WORKERS: int = Field(default=4, ge=1, le=32, description="Threads used to tail log files in parallel")

    # -----------------------
    # Runtime engine
    # -----------------------
    WORKER_NUM: int = Field(default=0, ge=0, description="Configured worker total of the runtime engine")
    MEMORY_LIMIT: str = Field(default="-1", description="Memory limit (e.g. 512M, 2G, -1 for unbounded)")

    @property
    def APP_NAME_SLUG(self) -> str:
        """Lower-case, dash-separated form of APP_NAME used in stats file names."""
        slug = re.sub(r"[^A-Za-z0-9-]+", "-", self.APP_NAME or "unknown")
        return slug.strip().lower()

    @property
    def LOG_PATH(self) -> str:
        return self.LOG_DIR or os.path.join(self.PROJECT_ROOT, "var", "log")

    @property
    def APP_STATS_PATH(self) -> str:
        return os.path.join(self.PROJECT_ROOT, "var", f"server-stats-{self.APP_NAME_SLUG}.json")

    @property
    def RUNTIME_STATS_PATH(self) -> str:
        return os.path.join(self.PROJECT_ROOT, "var", f"runtime-stats-{self.APP_NAME_SLUG}.json")

    # -----------------------
    # Validators / normalizers
    # -----------------------
    @field_validator("ENV")
    @classmethod
    def _normalize_env(cls, v: str) -> str:
        return (v or "dev").strip().lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    @field_validator("CORS_ALLOW_ORIGINS")
    @classmethod
    def _clean_cors_origins(cls, v: List[str]) -> List[str]:
        return [o.strip() for o in v or [] if o and o.strip()]

    @field_validator("LOG_FILE_EXTENSION")
    @classmethod
    def _normalize_extension(cls, v: str) -> str:
        return (v or "log").strip().lstrip(".").lower()

    @field_validator("LOG_SOURCE_EXTENSIONS")
    @classmethod
    def _normalize_source_extensions(cls, v: List[str]) -> List[str]:
        return [e.strip().lstrip(".") for e in v or [] if e and e.strip()]

    @field_validator("MEMORY_LIMIT", "APP_NAME", "PROJECT_ROOT")
    @classmethod
    def _strip_strings(cls, v: str) -> str:
        return (v or "").strip()


# Singleton instance imported across the codebase.
settings = Settings()
