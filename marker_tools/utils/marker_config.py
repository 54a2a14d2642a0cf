"""
Configuration file support for the marker detector.

Configuration is stored as JSON. Every key is optional; anything left out
falls back to the MarkerVisionBase defaults.

Example file:

    {
        "threshold_preset": "narrow_pink",
        "thresholds": {"pink_min_b": 140},
        "cluster_radius_px": 40,
        "colinearity_threshold_px": 20,
        "order_tolerance_px": 5,
        "scan_stride": 1,
        "policy": "B",
        "channel_order": "BGR",
        "debug": false
    }

Explicit "thresholds" entries are applied on top of the preset.
"""

import json
import os
from typing import Any, Dict

from .marker_vision import MarkerConfigurationError, MarkerVisionBase


# Named threshold overrides. The pink green-channel band is the part of
# the colour model that was never settled, so both variants are kept.
THRESHOLD_PRESETS = {
    "default": {},
    "narrow_pink": {
        "pink_min_g": 0,
        "pink_max_g": 30,
    },
}

CONFIG_KEYS = (
    "threshold_preset",
    "thresholds",
    "cluster_radius_px",
    "colinearity_threshold_px",
    "order_tolerance_px",
    "scan_stride",
    "policy",
    "channel_order",
    "debug",
)


def validate_config(config: Dict[str, Any]) -> None:
    """
    Check the structure of a configuration dictionary.

    Value ranges are checked later by the MarkerDetector constructor.

    Raises:
        MarkerConfigurationError: If config is not a dict, contains an
            unknown key, names an unknown preset, or has a non-dict
            "thresholds" entry.
    """

    if not isinstance(config, dict):
        raise MarkerConfigurationError(
            f"validate_config: Config must be a dict, got {type(config)}"
        )

    unknown = sorted(set(config) - set(CONFIG_KEYS))
    if unknown:
        raise MarkerConfigurationError(
            f"validate_config: Unknown config keys {unknown}. "
            f"Valid keys: {list(CONFIG_KEYS)}"
        )

    preset = config.get("threshold_preset")
    if preset is not None and preset not in THRESHOLD_PRESETS:
        raise MarkerConfigurationError(
            f"validate_config: Unknown threshold preset '{preset}'. "
            f"Valid presets: {list(THRESHOLD_PRESETS)}"
        )

    thresholds = config.get("thresholds")
    if thresholds is not None and not isinstance(thresholds, dict):
        raise MarkerConfigurationError(
            "validate_config: 'thresholds' must be a dict, got "
            f"{type(thresholds)}"
        )


def detector_kwargs(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Turn a configuration dictionary into MarkerDetector keyword
    arguments, merging the threshold preset with explicit thresholds.
    """

    validate_config(config)

    kwargs = {
        key: value
        for key, value in config.items()
        if key not in ("threshold_preset", "thresholds")
    }

    preset = config.get("threshold_preset") or "default"
    thresholds = dict(THRESHOLD_PRESETS[preset])
    thresholds.update(config.get("thresholds") or {})
    kwargs["thresholds"] = thresholds or None

    return kwargs


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load and structurally validate a JSON configuration file.

    Args:
        config_path (str): Path to the JSON file.

    Returns:
        dict: The configuration dictionary.

    Raises:
        MarkerConfigurationError: If the file is missing, is not valid
            UTF-8 JSON, cannot be read, or fails validate_config.
    """

    if not os.path.isfile(config_path):
        raise MarkerConfigurationError(
            f"load_config: Config file not found: {config_path}"
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MarkerConfigurationError(
            f"load_config: Invalid JSON in {config_path}: {e}"
        ) from e
    except OSError as e:
        raise MarkerConfigurationError(
            f"load_config: Cannot read {config_path}: {e}"
        ) from e

    validate_config(config)
    return config


def save_config(config: Dict[str, Any], config_path: str) -> None:
    """
    Validate and write a configuration dictionary as JSON.

    Raises:
        MarkerConfigurationError: If config fails validate_config.
        OSError: If the file cannot be written.
    """

    validate_config(config)

    with open(config_path, "w") as f:
        json.dump(config, f, indent=4)

    print(f"save_config: Configuration saved to {config_path}")


def default_config() -> Dict[str, Any]:
    """The built-in defaults expressed as a configuration dictionary."""

    return {
        "threshold_preset": "default",
        "thresholds": dict(MarkerVisionBase.DEFAULT_COLOR_THRESHOLDS),
        "cluster_radius_px": MarkerVisionBase.DEFAULT_CLUSTER_RADIUS_PX,
        "colinearity_threshold_px": (
            MarkerVisionBase.DEFAULT_COLINEARITY_THRESHOLD_PX
        ),
        "order_tolerance_px": MarkerVisionBase.DEFAULT_ORDER_TOLERANCE_PX,
        "scan_stride": MarkerVisionBase.DEFAULT_SCAN_STRIDE,
        "policy": MarkerVisionBase.DEFAULT_POLICY.value,
        "channel_order": MarkerVisionBase.DEFAULT_CHANNEL_ORDER,
        "debug": False,
    }
