"""CLI commands for Mingzi."""

from . import (
    generate,
    config_cmd,
    credits,
    serve,
)

__all__ = [
    "generate",
    "config_cmd",
    "credits",
    "serve",
]
