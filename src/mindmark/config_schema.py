"""Unified configuration schema for mindmark.

Pydantic models for the YAML config structure, one section per concern,
plus the helper that turns a validated file config into fallbacks for
``load_config()``.

Usage:
    from mindmark.config_schema import build_config, yaml_fallbacks

    unified = build_config(load_hierarchical_config())
    config = load_config(yaml_fallbacks=yaml_fallbacks(unified))
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class SyncConfig(BaseModel):
    """Synchronization timing and parse defaults."""

    suppression_window_ms: int = Field(
        default=300,
        ge=1,
        le=10000,
        description="Editor suppression window in milliseconds (1-10000)",
    )
    debounce_ms: int = Field(
        default=200,
        ge=0,
        le=10000,
        description="Markdown stream flush debounce in milliseconds (0-10000)",
    )
    default_collapse_depth: int | None = Field(
        default=2,
        ge=0,
        le=32,
        description="Collapse nodes deeper than this on load (null disables)",
    )

    model_config = {"frozen": True}


class StorageConfig(BaseModel):
    """Local map storage.

    Attributes:
        root: Directory holding ``<map_id>.md`` files.  ``None`` means
            the current directory.
    """

    root: str | None = Field(default=None, description="Map directory")

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level configuration.

    Every section has defaults, so ``UnifiedConfig()`` is always valid.
    """

    sync: SyncConfig = Field(default_factory=SyncConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from ``load_hierarchical_config()`` output.

    Missing sections get defaults.

    Raises:
        pydantic.ValidationError: A value is out of range or mistyped.
    """
    if not raw_data:
        return UnifiedConfig()
    return UnifiedConfig(**raw_data)


def yaml_fallbacks(unified: UnifiedConfig) -> dict[str, Any]:
    """Flatten the file config into the fallback dict ``load_config()`` takes.

    Only values explicitly set in a file are returned, so built-in
    defaults stay owned by ``load_config()``.
    """
    fallbacks: dict[str, Any] = dict(
        unified.sync.model_dump(exclude_unset=True)
    )
    if unified.storage.root is not None:
        fallbacks["storage_root"] = unified.storage.root
    return fallbacks
