"""
Calibrate - downsample sequin reads to a target depth.

Workflow:
1. Validate every option combination and load/match the BED files. Nothing
   is read from the alignment until this succeeds.
2. Plan each sequin region (target, observed depth, retain fraction, seed)
   and decide keep/drop per read pair, region by region in a thread pool.
3. Write the calibrated alignment (sorted, optionally indexed) through a
   temporary file that replaces the destination only on success.
4. Optionally re-open the indexed output and write a before/after summary.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from sequinkit.constants import (
    DEFAULT_CALIBRATION_MIN_MAPQ,
    DEFAULT_FLANK,
    DEFAULT_SEED,
)
from sequinkit.core.calibration import CalibrationMode, CalibrationResult, calibrate_regions
from sequinkit.core.coverage import ReadPolicy, ReadSource
from sequinkit.core.region import RegionIndex, load_bed
from sequinkit.core.summary import SummaryRecord, check_summary_request, summarize
from sequinkit.exceptions import ConfigError
from sequinkit.io.alignment import CalibratedBamWriter, PysamReadSource
from sequinkit.io.reports import summary_table, write_csv
from sequinkit.modules.base import ModuleBase, ModuleResult


class Calibrator(ModuleBase):
    """Calibrate sequin coverage in an alignment file."""

    description = "sequin coverage calibration"

    def __init__(
        self,
        bam_path: Path,
        bed_path: Path,
        sample_bed: Optional[Path] = None,
        output: Optional[Path] = None,
        fold_coverage: Optional[float] = None,
        seed: int = DEFAULT_SEED,
        flank: int = DEFAULT_FLANK,
        min_mapq: int = DEFAULT_CALIBRATION_MIN_MAPQ,
        write_index: bool = False,
        exclude_uncalibrated_reads: bool = False,
        summary_report: Optional[Path] = None,
        reference: Optional[Path] = None,
        cram: bool = False,
        threads: int = 1,
        progress: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(name="calibrate", logger=logger)
        self.bam_path = Path(bam_path)
        self.bed_path = Path(bed_path)
        self.sample_bed = Path(sample_bed) if sample_bed else None
        self.output = output
        self.fold_coverage = fold_coverage
        self.seed = seed
        self.flank = flank
        self.policy = ReadPolicy(min_mapq=min_mapq)
        self.write_index = write_index
        self.exclude_uncalibrated_reads = exclude_uncalibrated_reads
        self.summary_report = Path(summary_report) if summary_report else None
        self.reference = reference
        self.cram = cram
        self.threads = threads
        self.progress = progress

        self.mode: Optional[CalibrationMode] = None
        self.index: Optional[RegionIndex] = None
        self.writer: Optional[CalibratedBamWriter] = None

    def validate_inputs(self) -> None:
        self.validate_input_file(self.bam_path, "Alignment")
        self.validate_input_file(self.bed_path, "BED")
        if self.sample_bed is not None:
            self.validate_input_file(self.sample_bed, "Sample BED")
        if self.seed < 0:
            raise ConfigError(f"Seed must be >= 0, got {self.seed}")

        self.mode = CalibrationMode.resolve(self.fold_coverage, self.sample_bed is not None)
        check_summary_request(self.summary_report, self.output, self.write_index)
        self.writer = CalibratedBamWriter(
            self.bam_path,
            self.output,
            reference=self.reference,
            cram=self.cram,
            write_index=self.write_index,
            threads=self.threads,
            logger=self.logger,
        )

        if self.mode.is_derived and self.flank:
            self.logger.warning(
                f"--flank {self.flank} is ignored with a sample BED; "
                "sequin regions are measured in full"
            )
        self.flank = self.mode.measurement_flank(self.flank)

        subject = load_bed(self.bed_path)
        reference = load_bed(self.sample_bed) if self.sample_bed is not None else None
        self.index = RegionIndex(subject, reference)
        for region in self.index:
            region.trimmed(self.flank)

    def calibrate(self, source: ReadSource) -> CalibrationResult:
        """Plan and decide every region of the loaded index."""
        assert self.mode is not None and self.index is not None
        return calibrate_regions(
            self.index,
            self.mode,
            sequin_source=source,
            sample_source=source,
            seed=self.seed,
            policy=self.policy,
            flank=self.flank,
            threads=self.threads,
            progress=self.progress,
            logger=self.logger,
        )

    def summarize(self, calibration: CalibrationResult, source: ReadSource) -> list[SummaryRecord]:
        """Before/after coverage of every region, reading the written output."""
        assert self.output is not None
        after = PysamReadSource(self.output, reference=self.reference, threads=self.threads)
        return summarize(calibration.plans, source, after, policy=self.policy, flank=self.flank)

    def execute(self) -> ModuleResult:
        assert self.index is not None and self.writer is not None
        result = ModuleResult(success=False, module_name=self.name)
        source = PysamReadSource(self.bam_path, reference=self.reference, threads=self.threads)

        calibration = self.calibrate(source)
        stats = self.writer.write(
            calibration.decisions,
            self.index.chromosomes,
            exclude_uncalibrated=self.exclude_uncalibrated_reads,
        )

        if self.summary_report is not None:
            try:
                records = self.summarize(calibration, source)
                write_csv(summary_table(records), self.summary_report)
            except BaseException:
                # A failed run leaves neither the alignment nor a partial report
                self.writer.remove_output()
                try:
                    self.summary_report.unlink()
                except FileNotFoundError:
                    pass
                raise
            result.add_output("summary_report", self.summary_report)

        if self.writer.output_path is not None:
            result.add_output("calibrated_bam", self.writer.output_path)
        uncovered = [p.region.name for p in calibration.plans if not p.has_coverage]
        if uncovered:
            result.add_warning(
                f"{len(uncovered)} region(s) have no sequin coverage: {', '.join(uncovered[:10])}"
            )
        result.add_metric("regions", len(calibration.plans))
        result.add_metric("pairs_kept", sum(r.kept for r in calibration.results))
        result.add_metric("pairs_dropped", sum(r.dropped for r in calibration.results))
        result.add_metric("records_written", stats.written)
        result.add_metric("records_dropped", stats.dropped)
        result.success = True
        return result
