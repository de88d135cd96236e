"""Command line interface for pnpmshield."""

from .main import app

__all__ = ["app"]
