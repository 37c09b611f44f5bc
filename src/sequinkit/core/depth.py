"""
Depth Accumulator - per-base depth profiles and their summary statistics.

A profile is built from a stream of read spans with a difference array, so
the cost is linear in reads plus interval length regardless of read depth.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

import numpy as np

from sequinkit.constants import (
    FLAG_DUPLICATE,
    FLAG_PAIRED,
    FLAG_QCFAIL,
    FLAG_SECONDARY,
    FLAG_SUPPLEMENTARY,
    FLAG_UNMAPPED,
)
from sequinkit.core.region import Interval
from sequinkit.exceptions import DataError


@dataclass(frozen=True)
class ReadSpan:
    """The reference footprint of one alignment record.

    ``name`` is the read (template) name and doubles as the mate-pair key:
    both mates of a pair share it.
    """

    chrom: str
    start: int
    end: int
    name: str
    flag: int = 0
    mapq: int = 255

    @property
    def mate_id(self) -> str:
        return self.name

    @property
    def mapped(self) -> bool:
        return not self.flag & FLAG_UNMAPPED

    @property
    def paired(self) -> bool:
        return bool(self.flag & FLAG_PAIRED)

    @property
    def is_secondary(self) -> bool:
        return bool(self.flag & FLAG_SECONDARY)

    @property
    def is_supplementary(self) -> bool:
        return bool(self.flag & FLAG_SUPPLEMENTARY)

    @property
    def is_duplicate(self) -> bool:
        return bool(self.flag & FLAG_DUPLICATE)

    @property
    def is_qcfail(self) -> bool:
        return bool(self.flag & FLAG_QCFAIL)


def normalize_cap(cap: Optional[int]) -> Optional[int]:
    """Translate the external ``0 = unlimited`` sentinel into ``None``."""
    if cap is None or cap == 0:
        return None
    if cap < 0:
        raise DataError(f"Depth cap must be >= 0, got {cap}")
    return int(cap)


@dataclass(frozen=True, eq=False)
class DepthProfile:
    """Per-base depth over an interval plus statistics derived once."""

    interval: Interval
    per_base_depth: np.ndarray
    cap: Optional[int] = None
    min: int = field(init=False)
    max: int = field(init=False)
    mean: float = field(init=False)
    std: float = field(init=False)
    cv: float = field(init=False)

    def __post_init__(self) -> None:
        depth = np.asarray(self.per_base_depth, dtype=np.uint32)
        if depth.shape != (len(self.interval),):
            raise DataError(
                f"Depth array of length {depth.size} does not match "
                f"interval {self.interval} of length {len(self.interval)}"
            )
        cap = normalize_cap(self.cap)
        if cap is not None and depth.size and int(depth.max()) > cap:
            raise DataError(f"Depth exceeds cap of {cap} in {self.interval}")
        depth = depth.copy()
        depth.setflags(write=False)
        object.__setattr__(self, "per_base_depth", depth)
        object.__setattr__(self, "cap", cap)

        mean = float(depth.mean())
        std = float(depth.std())  # population stdev (ddof=0)
        object.__setattr__(self, "min", int(depth.min()))
        object.__setattr__(self, "max", int(depth.max()))
        object.__setattr__(self, "mean", mean)
        object.__setattr__(self, "std", std)
        object.__setattr__(self, "cv", std / mean if mean > 0 else 0.0)

    def __len__(self) -> int:
        return int(self.per_base_depth.size)

    @property
    def total(self) -> int:
        return int(self.per_base_depth.sum(dtype=np.int64))

    def fraction_at_least(self, threshold: int) -> float:
        """Fraction of bases whose depth is >= ``threshold``."""
        return float(np.count_nonzero(self.per_base_depth >= threshold)) / len(self)


def accumulate_depth(
    interval: Interval,
    spans: Iterable[ReadSpan],
    cap: Optional[int] = None,
) -> DepthProfile:
    """
    Build a DepthProfile for ``interval`` from read spans.

    Every span is clipped to the interval and counted; spans on another
    chromosome or outside the interval contribute nothing. The cap, when
    set and non-zero, clamps each base after all reads have been counted.

    Args:
        interval: Region to profile
        spans: Read spans, in any order
        cap: Per-base ceiling; None or 0 means unlimited

    Returns:
        DepthProfile with min/max/mean/std/cv populated
    """
    cap = normalize_cap(cap)
    length = len(interval)
    diff = np.zeros(length + 1, dtype=np.int64)

    for span in spans:
        if span.chrom != interval.chrom:
            continue
        lo = max(span.start, interval.start)
        hi = min(span.end, interval.end)
        if lo >= hi:
            continue
        diff[lo - interval.start] += 1
        diff[hi - interval.start] -= 1

    depth = np.cumsum(diff[:-1])
    if cap is not None:
        np.minimum(depth, cap, out=depth)
    return DepthProfile(interval=interval, per_base_depth=depth.astype(np.uint32), cap=cap)
