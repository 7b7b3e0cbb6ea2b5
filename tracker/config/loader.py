"""Tracker configuration with YAML loading and environment overrides.

This module provides the TrackerConfig model and load_tracker_config(),
which reads a YAML file, applies the ``environments.<name>`` section for
the selected environment and validates the result.
"""

import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

ENVIRONMENT_VARIABLE = "TRACKER_ENV"
CONFIG_PATH_VARIABLE = "TRACKER_CONFIG"


class ConfigLoadError(Exception):
    """Exception raised when configuration loading fails."""
    pass


class TrackerConfig(BaseModel):
    """Settings for the tracking pipeline."""

    # Delivery
    endpoint_url: Optional[str] = Field(
        default=None,
        description="Batch ingestion endpoint; batches are only logged when unset"
    )
    api_key_header: str = Field(
        default="x-wp-key",
        description="Header carrying the shared secret from TrackerMeta.api_password"
    )
    delivery_timeout_seconds: float = Field(
        default=10.0,
        description="Transport timeout for one batch POST"
    )
    flush_interval_ms: int = Field(
        default=10000,
        description="Milliseconds between timed batch flushes"
    )

    # Session
    session_storage_key: str = Field(
        default="tracking_session",
        description="Storage key of the persisted session id"
    )
    session_storage_path: Optional[Path] = Field(
        default=None,
        description="JSON file backing session storage; shared in-process storage when unset"
    )

    # Observers
    enable_scroll: bool = Field(default=True, description="Track scroll depth")
    enable_click: bool = Field(default=True, description="Track clicks")
    enable_engagement: bool = Field(default=True, description="Track engagement time")
    enable_interaction: bool = Field(default=True, description="Track toggle widgets")
    enable_visibility: bool = Field(default=True, description="Track section visibility")

    scroll_thresholds: List[float] = Field(
        default_factory=lambda: [0.25, 0.5, 0.75, 1.0],
        description="Scroll depth fractions reported once each"
    )
    click_debounce_ms: int = Field(default=250, description="Click debounce window")
    engagement_interval_ms: int = Field(default=5000, description="Engagement sampling interval")
    visibility_selector: str = Field(default=".track-section", description="Sections tracked for visibility")
    visibility_threshold: float = Field(default=0.5, description="Visible fraction that counts as seen")

    # Enrichment
    forward_fields: List[str] = Field(
        default_factory=lambda: ["device_type", "is_bot", "user_hash"],
        description="TrackerMeta fields copied into each event's context"
    )

    @field_validator('scroll_thresholds')
    @classmethod
    def validate_thresholds(cls, v):
        if not v:
            raise ValueError("scroll_thresholds must not be empty")
        if any(not 0 < t <= 1 for t in v):
            raise ValueError("scroll_thresholds must be within (0, 1]")
        if list(v) != sorted(set(v)):
            raise ValueError("scroll_thresholds must be unique and ascending")
        return v

    @field_validator('visibility_threshold')
    @classmethod
    def validate_visibility_threshold(cls, v):
        if not 0 <= v <= 1:
            raise ValueError("visibility_threshold must be between 0 and 1")
        return v

    @field_validator('flush_interval_ms', 'click_debounce_ms', 'engagement_interval_ms')
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("intervals must be positive")
        return v


def load_tracker_config(
    config_path: Optional[Union[str, Path]] = None,
    environment: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> TrackerConfig:
    """Load TrackerConfig from a YAML file with environment overrides.

    Args:
        config_path: Path to YAML config file. Defaults to $TRACKER_CONFIG,
            then config/tracker.yaml in the project root.
        environment: Environment name for override selection. If None, uses $TRACKER_ENV.
        overrides: Additional configuration overrides to apply.

    Returns:
        Configured TrackerConfig instance.

    Raises:
        ConfigLoadError: If configuration loading or validation fails.
    """
    if config_path is None:
        config_path = os.getenv(CONFIG_PATH_VARIABLE)
    if config_path is None:
        project_root = Path(__file__).parents[2]
        config_path = project_root / "config" / "tracker.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigLoadError(f"Config file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Failed to parse YAML config: {e}") from e
    except OSError as e:
        raise ConfigLoadError(f"Failed to read config file: {e}") from e

    if not isinstance(config_data, dict):
        raise ConfigLoadError("Config file must contain a YAML dictionary")

    if environment is None:
        environment = os.getenv(ENVIRONMENT_VARIABLE, "production")

    environments = config_data.pop("environments", None) or {}
    if environment in environments:
        config_data = _deep_merge(config_data, environments[environment] or {})
        logger.info(f"Applied environment overrides for: {environment}")

    if overrides:
        config_data = _deep_merge(config_data, overrides)
        logger.debug("Applied additional configuration overrides")

    try:
        return TrackerConfig(**config_data)
    except ValidationError as e:
        raise ConfigLoadError(f"Failed to create TrackerConfig: {e}") from e


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result
