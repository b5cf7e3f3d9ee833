"""CLI commands for candlechart.

This package provides the command-line interface for candlechart,
a terminal presentation of the candle series and its auto-refresh.
"""

from candlechart.cli.main import cli, main

__all__ = ["cli", "main"]
