"""CSV report rendering for coverage statistics and calibration summaries."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import IO, List, Optional, Sequence, Union

import pandas as pd

from sequinkit.constants import OUTPUT_DECIMAL_PRECISION
from sequinkit.core.depth import DepthProfile
from sequinkit.core.summary import SummaryRecord, summary_rows

BEDCOV_COLUMNS = ["name", "chrom", "beg", "end", "min", "max", "mean", "std", "cv"]
SUMMARY_COLUMNS = [
    "name",
    "chrom",
    "start",
    "end",
    "uncalibrated_coverage",
    "target_coverage",
    "calibrated_coverage",
    "uncalibrated_cv",
    "calibrated_cv",
]

Destination = Union[str, Path, IO[str], None]


def threshold_column(threshold: int) -> str:
    return f"pct_gt_{threshold}"


def bedcov_table(
    profiles: Sequence[DepthProfile],
    thresholds: Optional[Sequence[int]] = None,
) -> pd.DataFrame:
    """One row per profiled interval, in input order."""
    thresholds = list(thresholds or [])
    rows: List[dict] = []
    for profile in profiles:
        region = profile.interval
        row = {
            "name": region.name,
            "chrom": region.chrom,
            "beg": region.start,
            "end": region.end,
            "min": profile.min,
            "max": profile.max,
            "mean": profile.mean,
            "std": profile.std,
            "cv": profile.cv,
        }
        for threshold in thresholds:
            row[threshold_column(threshold)] = profile.fraction_at_least(threshold)
        rows.append(row)
    columns = BEDCOV_COLUMNS + [threshold_column(t) for t in thresholds]
    return pd.DataFrame(rows, columns=columns)


def summary_table(records: Sequence[SummaryRecord]) -> pd.DataFrame:
    return pd.DataFrame(summary_rows(records), columns=SUMMARY_COLUMNS)


def write_csv(table: pd.DataFrame, dest: Destination = None) -> None:
    """Write ``table`` as CSV with fixed float precision (stdout by default)."""
    if dest is None or str(dest) == "-":
        dest = sys.stdout
    elif isinstance(dest, (str, Path)):
        Path(dest).parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(
        dest,
        index=False,
        float_format=f"%.{OUTPUT_DECIMAL_PRECISION}f",
        lineterminator="\n",
    )
