"""Command-line interface for taskman."""

from .app import app, main

__all__ = ["app", "main"]
