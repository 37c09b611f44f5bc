"""`bedcov` subcommand implementation."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import click

from sequinkit.constants import DEFAULT_FLANK, DEFAULT_MAX_DEPTH
from sequinkit.modules.bedcov import Bedcov
from sequinkit.utils.logging import get_logger

from ..common_options import (
    config_option,
    min_mapq_option,
    output_option,
    reference_option,
    threads_option,
)
from ..runner import resolve_config, run_module


def _parse_thresholds(
    _ctx: click.Context, _param: click.Parameter, value: Optional[str]
) -> Optional[List[int]]:
    if value is None:
        return None
    try:
        thresholds = [int(item) for item in value.split(",") if item.strip()]
    except ValueError:
        raise click.BadParameter(f"expected comma-separated integers, got {value!r}")
    if any(t < 0 for t in thresholds):
        raise click.BadParameter("thresholds must be >= 0")
    return thresholds


@click.command(name="bedcov")
@click.argument("bed", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("bam", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@min_mapq_option(default=0)
@click.option(
    "-f",
    "--flank",
    type=click.IntRange(min=0),
    default=None,
    help=f"Bases trimmed from both ends of each region [default: {DEFAULT_FLANK}]",
)
@click.option(
    "-d",
    "--max-depth",
    type=click.IntRange(min=0),
    default=None,
    help=f"Per-base depth limit, 0 for unlimited [default: {DEFAULT_MAX_DEPTH}]",
)
@click.option(
    "-t",
    "--thresholds",
    callback=_parse_thresholds,
    default=None,
    help="Comma-separated depths; adds a pct_gt_<t> column for each",
)
@reference_option
@output_option("Output CSV [default: stdout]")
@threads_option
@config_option
@click.pass_context
def bedcov(
    ctx: click.Context,
    bed: Path,
    bam: Path,
    min_mapq: Optional[int],
    flank: Optional[int],
    max_depth: Optional[int],
    thresholds: Optional[List[int]],
    reference: Optional[Path],
    output: Optional[Path],
    threads: Optional[int],
    config: Optional[Path],
) -> None:
    """Coverage statistics for each region of BED in the indexed BAM/CRAM."""
    cfg = resolve_config(
        ctx,
        config,
        "bedcov",
        {
            "min_mapq": min_mapq,
            "flank": flank,
            "max_depth": max_depth,
            "thresholds": thresholds,
        },
        reference=reference,
        threads=threads,
    )
    logger = get_logger("cli")
    module = Bedcov(
        bed_path=bed,
        bam_path=bam,
        output=output,
        min_mapq=cfg.bedcov.min_mapq,
        flank=cfg.bedcov.flank,
        max_depth=cfg.bedcov.max_depth,
        thresholds=cfg.bedcov.thresholds,
        reference=cfg.reference,
        threads=cfg.threads,
        progress=cfg.runtime.enable_progress,
    )
    run_module(module, logger)
