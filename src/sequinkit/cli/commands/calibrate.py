"""`calibrate` subcommand implementation."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from sequinkit.constants import (
    DEFAULT_CALIBRATION_MIN_MAPQ,
    DEFAULT_FLANK,
    DEFAULT_FOLD_COVERAGE,
    DEFAULT_SEED,
)
from sequinkit.modules.calibrate import Calibrator
from sequinkit.utils.logging import get_logger

from ..common_options import (
    config_option,
    min_mapq_option,
    output_option,
    reference_option,
    threads_option,
)
from ..runner import resolve_config, run_module


@click.command(name="calibrate")
@click.argument("bam", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-b",
    "--bed",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Sequin regions (BED, 4 columns) on the decoy chromosome",
)
@click.option(
    "-f",
    "--fold-coverage",
    type=click.FloatRange(min=0),
    default=None,
    help=f"Fixed target depth for every region [default: {DEFAULT_FOLD_COVERAGE:g}]",
)
@click.option(
    "-S",
    "--sample-bed",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Matching sample regions; each target is the sample's mean depth",
)
@click.option(
    "-s",
    "--seed",
    type=click.IntRange(min=0),
    default=None,
    help=f"Random seed for read selection [default: {DEFAULT_SEED}]",
)
@click.option(
    "--flank",
    type=click.IntRange(min=0),
    default=None,
    help=f"Bases ignored at both ends of each region [default: {DEFAULT_FLANK}]",
)
@min_mapq_option(default=DEFAULT_CALIBRATION_MIN_MAPQ)
@output_option("Calibrated BAM/CRAM [default: stdout]")
@click.option("--write-index", is_flag=True, help="Index the calibrated output")
@click.option(
    "-x",
    "--exclude-uncalibrated-reads",
    is_flag=True,
    help="Only write reads from contigs carrying sequin regions",
)
@click.option(
    "--summary-report",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write a before/after coverage CSV (requires -o and --write-index)",
)
@reference_option
@click.option("-C", "--cram", is_flag=True, help="Write CRAM instead of BAM")
@threads_option
@config_option
@click.pass_context
def calibrate(
    ctx: click.Context,
    bam: Path,
    bed: Path,
    fold_coverage: Optional[float],
    sample_bed: Optional[Path],
    seed: Optional[int],
    flank: Optional[int],
    min_mapq: Optional[int],
    output: Optional[Path],
    write_index: bool,
    exclude_uncalibrated_reads: bool,
    summary_report: Optional[Path],
    reference: Optional[Path],
    cram: bool,
    threads: Optional[int],
    config: Optional[Path],
) -> None:
    """Downsample sequin reads in BAM to a target coverage."""
    cfg = resolve_config(
        ctx,
        config,
        "calibrate",
        {
            "fold_coverage": fold_coverage,
            "seed": seed,
            "flank": flank,
            "min_mapq": min_mapq,
            "write_index": write_index,
            "exclude_uncalibrated_reads": exclude_uncalibrated_reads,
            "cram": cram,
        },
        reference=reference,
        threads=threads,
    )
    logger = get_logger("cli")
    module = Calibrator(
        bam_path=bam,
        bed_path=bed,
        sample_bed=sample_bed,
        output=output,
        fold_coverage=cfg.calibrate.fold_coverage,
        seed=cfg.calibrate.seed,
        flank=cfg.calibrate.flank,
        min_mapq=cfg.calibrate.min_mapq,
        write_index=cfg.calibrate.write_index,
        exclude_uncalibrated_reads=cfg.calibrate.exclude_uncalibrated_reads,
        summary_report=summary_report,
        reference=cfg.reference,
        cram=cfg.calibrate.cram,
        threads=cfg.threads,
        progress=cfg.runtime.enable_progress,
    )
    run_module(module, logger)
