"""Shared command execution helpers for the CLI."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Mapping, Optional

import click

from sequinkit.cli.exit_codes import EXIT_ERROR, EXIT_SIGINT
from sequinkit.config import Config, load_config
from sequinkit.exceptions import ConfigError, SequinKitError
from sequinkit.modules.base import ModuleBase, ModuleResult
from sequinkit.utils.logging import get_logger, level_from_verbosity, setup_logging


def resolve_config(
    ctx: click.Context,
    config_path: Optional[Path],
    section: str,
    overrides: Mapping[str, Any],
    reference: Optional[Path] = None,
    threads: Optional[int] = None,
) -> Config:
    """
    Build the effective configuration for a subcommand.

    Priority: CLI option (if given) > config file > built-in default. Options
    left at ``None`` on the command line keep the config value; boolean flags
    can only switch a setting on.
    """
    obj = ctx.find_root().obj or {}
    verbose = obj.get("verbose", 0)
    cli_log_file = obj.get("log_file")

    try:
        cfg = load_config(config_path) if config_path else Config()
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_ERROR)

    # -v/-vv beats runtime.log_level; --log-file beats runtime.log_file
    setup_logging(
        level=level_from_verbosity(verbose, default=cfg.runtime.log_level),
        log_file=cli_log_file or cfg.runtime.log_file,
    )

    target = getattr(cfg, section)
    for key, value in overrides.items():
        if value is None or value is False:
            continue
        setattr(target, key, value)
    if reference is not None:
        cfg.reference = reference
    if threads is not None:
        cfg.threads = threads

    try:
        cfg.validate()
    except ConfigError as exc:
        get_logger("cli").error(f"Configuration error: {exc}")
        sys.exit(EXIT_ERROR)
    return cfg


def run_module(module: ModuleBase, logger: Optional[logging.Logger] = None) -> ModuleResult:
    """Run a command module, mapping failures to exit codes."""
    logger = logger or get_logger("cli")
    try:
        return module.run()
    except KeyboardInterrupt:
        logger.info(f"{module.name} interrupted by user")
        sys.exit(EXIT_SIGINT)
    except SequinKitError as exc:
        logger.error(f"{module.name} failed: {exc}")
        sys.exit(EXIT_ERROR)
    except Exception as exc:
        logger.exception(f"Unexpected error: {exc}")
        sys.exit(EXIT_ERROR)
