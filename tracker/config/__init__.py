"""Configuration loading for the tracker."""

from .loader import TrackerConfig, ConfigLoadError, load_tracker_config

__all__ = [
    'TrackerConfig',
    'ConfigLoadError',
    'load_tracker_config',
]
