"""Runtime configuration for the sync engine and CLI.

Reads settings from CLI args, environment variables, .env files, and YAML
config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    MINDMARK_SUPPRESSION_WINDOW_MS: Editor suppression window (default: 300)
    MINDMARK_DEBOUNCE_MS: Stream flush debounce (default: 200)
    MINDMARK_COLLAPSE_DEPTH: Collapse depth on load, or "none" (default: 2)
    MINDMARK_STORAGE_ROOT: Map directory (default: current directory)
    MINDMARK_DEBUG: Enable debug logging (default: false)
"""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_NONE_VALUES = ("", "none", "null", "off")


@dataclass
class Config:
    suppression_window_ms: int = 300
    debounce_ms: int = 200
    default_collapse_depth: int | None = 2
    storage_root: str | None = None
    debug: bool = False


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If a timing or depth value is out of range.
    """
    if not (1 <= config.suppression_window_ms <= 10000):
        raise ValueError(
            f"Invalid suppression window {config.suppression_window_ms}: "
            "must be between 1 and 10000 ms"
        )
    if not (0 <= config.debounce_ms <= 10000):
        raise ValueError(
            f"Invalid debounce {config.debounce_ms}: "
            "must be between 0 and 10000 ms"
        )
    depth = config.default_collapse_depth
    if depth is not None and not (0 <= depth <= 32):
        raise ValueError(
            f"Invalid collapse depth {depth}: must be between 0 and 32"
        )
    if config.storage_root is not None:
        config.storage_root = config.storage_root.strip() or None

    if config.default_collapse_depth == 0:
        logger.warning(
            "Collapse depth 0 hides every node below the roots on load"
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _get_int_env(key: str, low: int, high: int) -> int | None:
    raw = os.getenv(key)
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        ) from None
    if not (low <= value <= high):
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        )
    return value


def load_config(
    suppression_window_ms: int | None = None,
    debounce_ms: int | None = None,
    default_collapse_depth: int | None = None,
    storage_root: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        suppression_window_ms: CLI override for the suppression window.
        debounce_ms: CLI override for the stream debounce.
        default_collapse_depth: CLI override for the collapse depth.
        storage_root: CLI override for the map directory.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flat dict from ``config_schema.yaml_fallbacks()``.
            Used when both CLI arg and env var are unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If an env var is malformed or a value is out of range.
    """
    fb = yaml_fallbacks or {}
    defaults = Config()

    # --- Numeric fields: CLI > env > YAML > default ---

    if suppression_window_ms is not None:
        final_window = suppression_window_ms
    else:
        env_window = _get_int_env("MINDMARK_SUPPRESSION_WINDOW_MS", 1, 10000)
        if env_window is not None:
            final_window = env_window
        else:
            final_window = int(
                fb.get("suppression_window_ms", defaults.suppression_window_ms)
            )

    if debounce_ms is not None:
        final_debounce = debounce_ms
    else:
        env_debounce = _get_int_env("MINDMARK_DEBOUNCE_MS", 0, 10000)
        if env_debounce is not None:
            final_debounce = env_debounce
        else:
            final_debounce = int(fb.get("debounce_ms", defaults.debounce_ms))

    if default_collapse_depth is not None:
        final_depth: int | None = default_collapse_depth
    else:
        raw_depth = os.getenv("MINDMARK_COLLAPSE_DEPTH")
        if raw_depth is not None and raw_depth.strip().lower() in _NONE_VALUES:
            final_depth = None
        elif raw_depth is not None:
            final_depth = _get_int_env("MINDMARK_COLLAPSE_DEPTH", 0, 32)
        elif "default_collapse_depth" in fb:
            depth_fb = fb["default_collapse_depth"]
            final_depth = None if depth_fb is None else int(depth_fb)
        else:
            final_depth = defaults.default_collapse_depth

    # --- String fields: CLI > env > YAML > default ---

    final_root = (
        storage_root
        or os.getenv("MINDMARK_STORAGE_ROOT")
        or fb.get("storage_root")
    )

    # --- Boolean fields: CLI > env > YAML > default ---

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("MINDMARK_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    config = Config(
        suppression_window_ms=final_window,
        debounce_ms=final_debounce,
        default_collapse_depth=final_depth,
        storage_root=final_root,
        debug=final_debug,
    )

    validate_config(config)

    return config
