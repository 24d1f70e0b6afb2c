"""Tests for the unified config schema and the fallback adapter.

Tests all Pydantic models in config_schema.py (UnifiedConfig, SyncConfig,
StorageConfig, LoggingConfig), the build_config() factory, and the
yaml_fallbacks() adapter feeding load_config().
"""

import pytest
from pydantic import ValidationError

from mindmark.config import load_config
from mindmark.config_schema import (
    LoggingConfig,
    StorageConfig,
    SyncConfig,
    UnifiedConfig,
    build_config,
    yaml_fallbacks,
)

# ---------------------------------------------------------------------------
# UnifiedConfig tests
# ---------------------------------------------------------------------------


class TestUnifiedConfig:
    """Tests for the top-level UnifiedConfig model."""

    def test_empty_config_has_defaults(self):
        """UnifiedConfig() is valid with every section defaulted."""
        config = UnifiedConfig()
        assert config.sync.suppression_window_ms == 300
        assert config.sync.debounce_ms == 200
        assert config.sync.default_collapse_depth == 2
        assert config.storage.root is None
        assert config.logging.level == "INFO"
        assert config.logging.file is None

    def test_full_config(self):
        config = UnifiedConfig(
            sync=SyncConfig(suppression_window_ms=500, default_collapse_depth=None),
            storage=StorageConfig(root="~/maps"),
            logging=LoggingConfig(level="DEBUG", file="/tmp/mindmark.log"),
        )
        assert config.sync.suppression_window_ms == 500
        assert config.sync.default_collapse_depth is None
        assert config.storage.root == "~/maps"
        assert config.logging.file == "/tmp/mindmark.log"

    def test_frozen(self):
        config = UnifiedConfig()
        with pytest.raises(ValidationError):
            config.sync = SyncConfig()


class TestSyncConfig:
    """Tests for SyncConfig range validation."""

    @pytest.mark.parametrize(
        "field,value",
        [
            ("suppression_window_ms", 0),
            ("suppression_window_ms", 10001),
            ("debounce_ms", -1),
            ("default_collapse_depth", 33),
            ("default_collapse_depth", -1),
        ],
    )
    def test_out_of_range(self, field, value):
        with pytest.raises(ValidationError):
            SyncConfig(**{field: value})

    def test_zero_debounce(self):
        assert SyncConfig(debounce_ms=0).debounce_ms == 0


# ---------------------------------------------------------------------------
# build_config()
# ---------------------------------------------------------------------------


class TestBuildConfig:
    """Tests for build_config() factory."""

    def test_empty_dict(self):
        assert build_config({}) == UnifiedConfig()

    def test_partial_sections(self):
        config = build_config({"sync": {"debounce_ms": 50}})
        assert config.sync.debounce_ms == 50
        assert config.sync.suppression_window_ms == 300
        assert config.logging.level == "INFO"

    def test_invalid_value_raises(self):
        with pytest.raises(ValidationError):
            build_config({"sync": {"suppression_window_ms": "soon"}})


# ---------------------------------------------------------------------------
# yaml_fallbacks()
# ---------------------------------------------------------------------------


class TestYamlFallbacks:
    """Tests for the file config -> load_config() fallback adapter."""

    def test_defaults_yield_nothing(self):
        assert yaml_fallbacks(UnifiedConfig()) == {}

    def test_only_explicit_values(self):
        config = build_config(
            {"sync": {"debounce_ms": 50}, "storage": {"root": "/maps"}}
        )
        assert yaml_fallbacks(config) == {
            "debounce_ms": 50,
            "storage_root": "/maps",
        }

    def test_explicit_null_depth_kept(self):
        config = build_config({"sync": {"default_collapse_depth": None}})
        assert yaml_fallbacks(config) == {"default_collapse_depth": None}

    def test_feeds_load_config(self, isolated_env):
        config = build_config({"sync": {"suppression_window_ms": 120}})
        runtime = load_config(yaml_fallbacks=yaml_fallbacks(config))
        assert runtime.suppression_window_ms == 120
        assert runtime.debounce_ms == 200
