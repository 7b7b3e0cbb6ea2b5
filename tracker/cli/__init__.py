"""Command-line interface for the page tracker."""

from .main import app

__all__ = ['app']
