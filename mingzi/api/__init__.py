"""HTTP surface for Mingzi."""

from .app import app, create_app, get_caller

__all__ = ["app", "create_app", "get_caller"]
