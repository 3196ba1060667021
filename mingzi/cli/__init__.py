"""CLI for Mingzi."""

from .app import app

__all__ = ["app"]
