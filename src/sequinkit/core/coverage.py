"""
Coverage Module - "coverage of interval I using reads from source S".

This is the only place that decides which alignment records count towards
depth, so the bedcov report, target derivation, observed sequin depth and the
calibration summary all measure depth the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Protocol

from sequinkit.constants import DEFAULT_EXCLUDE_FLAGS
from sequinkit.core.depth import DepthProfile, ReadSpan, accumulate_depth
from sequinkit.core.region import Interval


class ReadSource(Protocol):
    """Anything able to list the alignment records overlapping an interval."""

    def fetch(self, interval: Interval) -> Iterable[ReadSpan]:
        """Yield every record overlapping ``interval`` (no filtering)."""
        ...


@dataclass(frozen=True)
class ReadPolicy:
    """Which records contribute to depth.

    Records carrying any bit of ``exclude_flags`` (by default unmapped,
    secondary, QC-fail, duplicate and supplementary) or with MAPQ below
    ``min_mapq`` are ignored.
    """

    min_mapq: int = 0
    exclude_flags: int = DEFAULT_EXCLUDE_FLAGS

    def counts(self, span: ReadSpan) -> bool:
        return not span.flag & self.exclude_flags and span.mapq >= self.min_mapq

    def select(self, spans: Iterable[ReadSpan]) -> Iterator[ReadSpan]:
        return (span for span in spans if self.counts(span))


DEFAULT_POLICY = ReadPolicy()


def coverage(
    interval: Interval,
    read_source: ReadSource,
    cap: Optional[int] = None,
    policy: ReadPolicy = DEFAULT_POLICY,
) -> DepthProfile:
    """
    Compute the depth profile of ``interval`` from ``read_source``.

    Args:
        interval: Region to measure
        read_source: Provider of overlapping read spans
        cap: Per-base depth ceiling (None or 0 for unlimited)
        policy: Read counting policy

    Returns:
        DepthProfile; an interval with no reads has mean 0 and cv 0
    """
    return accumulate_depth(interval, policy.select(read_source.fetch(interval)), cap=cap)


def mean_depth(
    interval: Interval,
    read_source: ReadSource,
    policy: ReadPolicy = DEFAULT_POLICY,
) -> float:
    """Uncapped mean depth of ``interval``."""
    return coverage(interval, read_source, cap=None, policy=policy).mean
