"""Installation validation command."""

from __future__ import annotations

import sys

import click

from sequinkit import __version__
from sequinkit.cli.exit_codes import EXIT_ERROR
from sequinkit.utils.validators import validate_installation


@click.command()
def validate() -> None:
    """Validate SequinKit installation and dependencies."""
    click.echo("Validating SequinKit installation...")

    issues = validate_installation()
    if not issues:
        click.echo("✓ All checks passed!")
        click.echo(f"  SequinKit version: {__version__}")
    else:
        click.echo("✗ Issues found:")
        for issue in issues:
            click.echo(f"  - {issue}")
        sys.exit(EXIT_ERROR)
