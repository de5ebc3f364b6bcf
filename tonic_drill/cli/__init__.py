"""Command-line interface for Tonic Drill."""

from .main import cli, main

__all__ = ["cli", "main"]
