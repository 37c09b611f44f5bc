"""
Bedcov - per-region coverage statistics.

Reads a 4-column BED file and an indexed BAM/CRAM, and reports one CSV row
per region: name, chrom, beg, end, min, max, mean, std, cv and, for each
requested threshold, the fraction of bases with at least that depth.
Regions without any reads are reported with zero statistics.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Sequence

from sequinkit.constants import DEFAULT_FLANK, DEFAULT_MAX_DEPTH
from sequinkit.core.coverage import ReadPolicy, ReadSource, coverage
from sequinkit.core.depth import DepthProfile, normalize_cap
from sequinkit.core.region import Interval, load_bed
from sequinkit.exceptions import ConfigError
from sequinkit.io.alignment import PysamReadSource
from sequinkit.io.reports import bedcov_table, write_csv
from sequinkit.modules.base import ModuleBase, ModuleResult
from sequinkit.utils.progress import iter_progress


def region_profiles(
    regions: Sequence[Interval],
    source: ReadSource,
    cap: Optional[int] = None,
    policy: ReadPolicy = ReadPolicy(),
    flank: int = 0,
    threads: int = 1,
    progress: bool = False,
) -> List[DepthProfile]:
    """Coverage profile of every region (after flank trimming), in input order."""
    trimmed = [region.trimmed(flank) for region in regions]
    workers = max(1, min(threads, len(trimmed) or 1))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(
            iter_progress(
                executor.map(lambda r: coverage(r, source, cap=cap, policy=policy), trimmed),
                total=len(trimmed),
                desc="Coverage",
                enabled=progress,
            )
        )


class Bedcov(ModuleBase):
    """Coverage statistics for the regions of a BED file."""

    description = "read depth per BED region"

    def __init__(
        self,
        bed_path: Path,
        bam_path: Path,
        output: Optional[Path] = None,
        min_mapq: int = 0,
        flank: int = DEFAULT_FLANK,
        max_depth: int = DEFAULT_MAX_DEPTH,
        thresholds: Optional[Sequence[int]] = None,
        reference: Optional[Path] = None,
        threads: int = 1,
        progress: bool = False,
        read_source: Optional[ReadSource] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(name="bedcov", logger=logger)
        self.bed_path = Path(bed_path)
        self.bam_path = Path(bam_path)
        self.output = output
        self.policy = ReadPolicy(min_mapq=min_mapq)
        self.flank = flank
        self.max_depth = max_depth
        self.thresholds = sorted(set(thresholds or []))
        self.reference = reference
        self.threads = threads
        self.progress = progress
        self._source = read_source
        self.regions: List[Interval] = []

    def validate_inputs(self) -> None:
        self.validate_input_file(self.bed_path, "BED")
        if self._source is None:
            self.validate_input_file(self.bam_path, "Alignment")
        if self.max_depth < 0:
            raise ConfigError("Max depth must be >= 0 (0 = unlimited)")
        if any(t < 0 for t in self.thresholds):
            raise ConfigError("Coverage thresholds must be >= 0")

        self.regions = load_bed(self.bed_path)
        for region in self.regions:
            region.trimmed(self.flank)

    def execute(self) -> ModuleResult:
        result = ModuleResult(success=False, module_name=self.name)
        source = self._source or PysamReadSource(
            self.bam_path, reference=self.reference, threads=self.threads
        )

        profiles = region_profiles(
            self.regions,
            source,
            cap=normalize_cap(self.max_depth),
            policy=self.policy,
            flank=self.flank,
            threads=self.threads,
            progress=self.progress,
        )
        write_csv(bedcov_table(profiles, self.thresholds), self.output)

        empty = [p.interval.name for p in profiles if p.max == 0]
        if empty:
            result.add_warning(f"{len(empty)} region(s) have no coverage: {', '.join(empty[:10])}")
        if self.output is not None and str(self.output) != "-":
            result.add_output("bedcov_csv", self.output)
        result.add_metric("regions", len(profiles))
        result.add_metric("regions_without_coverage", len(empty))
        result.success = True
        return result
