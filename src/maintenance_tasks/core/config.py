"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
The engine itself never reads settings; :func:`build_engine_config` turns them
into the immutable :class:`EngineConfig` once at startup.
"""

import importlib
import re
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from maintenance_tasks.lib.engine.backtrace import PatternBacktraceCleaner
from maintenance_tasks.lib.engine.config import DEFAULT_JOB_CLASS, EngineConfig
from maintenance_tasks.lib.engine.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./maintenance_tasks.db",
        description="SQLAlchemy async connection string for the task_runs table",
    )
    database_schema: str | None = Field(
        default=None,
        description="PostgreSQL schema for isolated environments (e.g., pr_42)",
    )

    @field_validator("database_schema")
    @classmethod
    def validate_database_schema(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if not re.match(r"^[a-z_][a-z0-9_]{0,62}$", v):
            msg = "Invalid database_schema: must match ^[a-z_][a-z0-9_]{0,62}$"
            raise ValueError(msg)
        return v

    # Tasks
    tasks_module: str = Field(
        default="Maintenance",
        description="Namespace prefix of task identifiers",
    )
    tasks_import: str = Field(
        default="",
        description="Comma-separated Python modules to import so their tasks register",
    )
    job_class: str = Field(
        default=DEFAULT_JOB_CLASS,
        description="Dotted path of the slice scheduler class",
    )

    @field_validator("job_class")
    @classmethod
    def validate_job_class(cls, v: str) -> str:
        if "." not in v.strip():
            msg = "job_class must be a dotted path like package.module.ClassName"
            raise ValueError(msg)
        return v.strip()

    # Engine
    ticker_delay: float = Field(
        default=1.0,
        description="Minimum seconds between two progress updates of a running task",
        gt=0,
    )
    max_slice_seconds: float | None = Field(
        default=None,
        description="Runtime budget of one slice; exceeding it interrupts the run so it can be re-enqueued",
        gt=0,
    )
    error_handler: str | None = Field(
        default=None,
        description="Dotted path of the per-item error handler, called as handler(error, context, item)",
    )

    @field_validator("error_handler")
    @classmethod
    def validate_error_handler(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        if "." not in v.strip():
            msg = "error_handler must be a dotted path like package.module.function"
            raise ValueError(msg)
        return v.strip()

    backtrace_exclude_patterns: str = Field(
        default="",
        description="Comma-separated regexes; matching frames are dropped from stored backtraces",
    )

    @field_validator("backtrace_exclude_patterns")
    @classmethod
    def validate_backtrace_exclude_patterns(cls, v: str) -> str:
        for pattern in (p.strip() for p in v.split(",")):
            if not pattern:
                continue
            try:
                re.compile(pattern)
            except re.error as e:
                msg = f"Invalid backtrace_exclude_patterns entry {pattern!r}: {e}"
                raise ValueError(msg) from e
        return v

    @property
    def backtrace_exclude_pattern_list(self) -> list[str]:
        """Parse backtrace exclusion patterns into a list."""
        if not self.backtrace_exclude_patterns.strip():
            return []
        return [p.strip() for p in self.backtrace_exclude_patterns.split(",") if p.strip()]

    @property
    def tasks_import_list(self) -> list[str]:
        """Parse task modules to import into a list."""
        if not self.tasks_import.strip():
            return []
        return [m.strip() for m in self.tasks_import.split(",") if m.strip()]

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()


def import_from_path(path: str, setting: str) -> Any:
    """Import the object a dotted ``module.attribute`` setting points at.

    Args:
        path: Dotted path, e.g. ``myapp.reporting.report_failure``.
        setting: Setting name used in error messages.

    Raises:
        ConfigurationError: If the path is not dotted or cannot be imported.
    """
    module_name, _, attribute = path.rpartition(".")
    if not module_name:
        msg = f"{setting} must be a dotted path, got {path!r}"
        raise ConfigurationError(msg)
    try:
        module = importlib.import_module(module_name)
        return getattr(module, attribute)
    except (ImportError, AttributeError) as e:
        msg = f"Cannot load {setting} {path!r}: {e}"
        raise ConfigurationError(msg) from e


def build_engine_config(settings: Settings, error_handler: Any = None) -> EngineConfig:
    """Build the process-wide engine configuration from settings.

    Args:
        settings: Loaded application settings.
        error_handler: Optional per-item error handler overriding the
            ``error_handler`` setting; legacy one- or two-argument handlers are
            adapted with a deprecation warning.

    Returns:
        The immutable engine configuration.

    Raises:
        ConfigurationError: If the configured error handler cannot be imported or
            has an unusable signature.
    """
    if error_handler is None and settings.error_handler is not None:
        error_handler = import_from_path(settings.error_handler, "error_handler")
    patterns = settings.backtrace_exclude_pattern_list
    config = EngineConfig(
        tasks_module=settings.tasks_module,
        job_class=settings.job_class,
        ticker_delay=settings.ticker_delay,
        max_slice_seconds=settings.max_slice_seconds,
        backtrace_cleaner=PatternBacktraceCleaner(patterns) if patterns else None,
    )
    if error_handler is not None:
        config = config.with_error_handler(error_handler)
    return config
