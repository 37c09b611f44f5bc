"""Core coverage and calibration engine (SequinKit)."""

from sequinkit.core.calibration import (
    CalibrationMode,
    CalibrationResult,
    ReadDecision,
    RegionCalibrationPlan,
    calibrate_regions,
)
from sequinkit.core.coverage import ReadPolicy, ReadSource, coverage
from sequinkit.core.depth import DepthProfile, ReadSpan, accumulate_depth
from sequinkit.core.region import Interval, RegionIndex, load_bed
from sequinkit.core.summary import SummaryRecord, summarize

__all__ = [
    "CalibrationMode",
    "CalibrationResult",
    "DepthProfile",
    "Interval",
    "ReadDecision",
    "ReadPolicy",
    "ReadSource",
    "ReadSpan",
    "RegionCalibrationPlan",
    "RegionIndex",
    "SummaryRecord",
    "accumulate_depth",
    "calibrate_regions",
    "coverage",
    "load_bed",
    "summarize",
]
