"""Command line interface for SequinKit."""

from sequinkit.cli.main import cli, main

__all__ = ["cli", "main"]
