"""Mingzi: Chinese name suggestions backed by LLM providers."""

__version__ = "0.3.0"
