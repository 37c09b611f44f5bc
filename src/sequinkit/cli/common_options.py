"""Shared Click options for SequinKit CLI commands.

Reusable option decorators so `bedcov` and `calibrate` spell the common
options the same way.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, TypeVar

import click

F = TypeVar("F", bound=Callable[..., None])


def reference_option(func: F) -> F:
    """Reference FASTA option (CRAM input/output)."""
    return click.option(
        "-T",
        "--reference",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        default=None,
        help="Reference FASTA, required for CRAM files",
    )(func)


def config_option(func: F) -> F:
    """Configuration file option."""
    return click.option(
        "-c",
        "--config",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Configuration file (YAML)",
    )(func)


def threads_option(func: F) -> F:
    """Threads option."""
    return click.option(
        "-@",
        "--threads",
        type=click.IntRange(min=1),
        default=None,
        help="Number of worker threads [default: 1]",
    )(func)


def min_mapq_option(default: int) -> Callable[[F], F]:
    """Minimum mapping quality option; the default is shown, config decides."""

    def decorator(func: F) -> F:
        return click.option(
            "-q",
            "-Q",
            "--min-MQ",
            "min_mapq",
            type=click.IntRange(0, 255),
            default=None,
            help=f"Skip reads with mapping quality below this [default: {default}]",
        )(func)

    return decorator


def output_option(help_text: str) -> Callable[[F], F]:
    """Output path option; '-' or no value writes to stdout."""

    def decorator(func: F) -> F:
        return click.option(
            "-o",
            "--output",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help=help_text,
        )(func)

    return decorator
