"""Shared utilities."""

from .debounce import Debouncer

__all__ = [
    'Debouncer',
]
