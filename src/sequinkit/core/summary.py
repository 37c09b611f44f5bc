"""Summary accounting: coverage of each calibrated region before and after."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from sequinkit.core.calibration import RegionCalibrationPlan
from sequinkit.core.coverage import DEFAULT_POLICY, ReadPolicy, ReadSource, coverage
from sequinkit.core.depth import DepthProfile
from sequinkit.core.region import Interval
from sequinkit.exceptions import ConfigError


@dataclass(frozen=True)
class CoverageStats:
    """Statistics snapshot of a DepthProfile."""

    min: int
    max: int
    mean: float
    std: float
    cv: float

    @classmethod
    def from_profile(cls, profile: DepthProfile) -> "CoverageStats":
        return cls(profile.min, profile.max, profile.mean, profile.std, profile.cv)


@dataclass(frozen=True)
class SummaryRecord:
    region: Interval
    target_depth: float
    before: CoverageStats
    after: CoverageStats

    @property
    def region_name(self) -> str:
        return self.region.name


def check_summary_request(summary_path, output_path, write_index: bool) -> None:
    """Reject summary requests the output cannot support, before any work."""
    if summary_path is None:
        return
    if output_path is None or str(output_path) == "-":
        raise ConfigError("A summary report requires the output to be written to a file")
    if not write_index:
        raise ConfigError("A summary report requires an indexed output (use --write-index)")
    if Path(summary_path).exists():
        raise ConfigError(f"The summary report file '{summary_path}' already exists")


def summarize(
    plans: Sequence[RegionCalibrationPlan],
    before_source: ReadSource,
    after_source: ReadSource,
    policy: ReadPolicy = DEFAULT_POLICY,
    flank: int = 0,
) -> List[SummaryRecord]:
    """
    Measure every planned region in the input and in the calibrated output.

    Both measurements go through the coverage module, uncapped, with the same
    policy and flank used when the plans were built.
    """
    records: List[SummaryRecord] = []
    for plan in plans:
        measured = plan.region.trimmed(flank)
        before = coverage(measured, before_source, cap=None, policy=policy)
        after = coverage(measured, after_source, cap=None, policy=policy)
        records.append(
            SummaryRecord(
                region=plan.region,
                target_depth=plan.target_depth,
                before=CoverageStats.from_profile(before),
                after=CoverageStats.from_profile(after),
            )
        )
    return records


def summary_rows(records: Sequence[SummaryRecord]) -> List[dict]:
    """Flatten records into report rows (one dict per region)."""
    rows = []
    for record in records:
        region = record.region
        rows.append(
            {
                "name": region.name,
                "chrom": region.chrom,
                "start": region.start,
                "end": region.end,
                "uncalibrated_coverage": record.before.mean,
                "target_coverage": record.target_depth,
                "calibrated_coverage": record.after.mean,
                "uncalibrated_cv": record.before.cv,
                "calibrated_cv": record.after.cv,
            }
        )
    return rows
