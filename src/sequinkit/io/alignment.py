"""
Alignment I/O backed by pysam.

- PysamReadSource: indexed BAM/CRAM access producing ReadSpans per interval.
  Each fetch opens its own handle so regions can be read from worker threads.
- CalibratedBamWriter: writes the records selected by a calibration run to a
  sorted BAM/CRAM, optionally indexed. Output goes to a temporary file that
  only replaces the destination once everything succeeded.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Collection, Dict, Iterator, List, Mapping, Optional, Union

import pysam

from sequinkit.core.depth import ReadSpan
from sequinkit.core.region import Interval
from sequinkit.exceptions import AlignmentIOError, ConfigError
from sequinkit.utils.logging import LogTemplates, get_logger

PathLike = Union[str, Path]


def _read_mode(path: Path) -> str:
    return "rc" if path.suffix.lower() == ".cram" else "rb"


def spans_from_record(record: pysam.AlignedSegment) -> List[ReadSpan]:
    """
    Aligned blocks of a pysam record as ReadSpans.

    Deletions and skipped regions (CIGAR D/N) split the record into several
    spans sharing its name, so they add no depth.
    """
    blocks = record.get_blocks()
    if not blocks:
        # Unmapped reads placed next to their mate have no aligned bases
        blocks = [(record.reference_start, record.reference_start + 1)]
    return [
        ReadSpan(
            chrom=record.reference_name,
            start=start,
            end=end,
            name=record.query_name,
            flag=record.flag,
            mapq=record.mapping_quality,
        )
        for start, end in blocks
    ]


class PysamReadSource:
    """ReadSource over an indexed BAM or CRAM file."""

    def __init__(
        self,
        path: PathLike,
        reference: Optional[PathLike] = None,
        threads: int = 1,
    ) -> None:
        self.path = Path(path)
        self.reference = Path(reference) if reference else None
        self.threads = max(1, threads)
        if not self.path.exists():
            raise AlignmentIOError(f"Alignment file not found: {self.path}", path=self.path)

        with self.open() as bam:
            if not bam.has_index():
                raise AlignmentIOError(
                    f"Alignment file is not indexed: {self.path} (run samtools index)",
                    path=self.path,
                )
            self.contig_lengths: Dict[str, int] = dict(zip(bam.references, bam.lengths))

    def open(self) -> pysam.AlignmentFile:
        try:
            return pysam.AlignmentFile(
                str(self.path),
                _read_mode(self.path),
                reference_filename=str(self.reference) if self.reference else None,
                threads=self.threads,
            )
        except (OSError, ValueError) as exc:
            raise AlignmentIOError(f"Unable to open {self.path}: {exc}", path=self.path) from exc

    @property
    def contigs(self) -> List[str]:
        return list(self.contig_lengths)

    def fetch(self, interval: Interval) -> Iterator[ReadSpan]:
        if interval.chrom not in self.contig_lengths:
            raise AlignmentIOError(
                f"Chromosome {interval.chrom} not found in header of {self.path}",
                path=self.path,
            )
        try:
            with self.open() as bam:
                for record in bam.fetch(interval.chrom, interval.start, interval.end):
                    yield from spans_from_record(record)
        except (OSError, ValueError) as exc:
            raise AlignmentIOError(
                f"Failed reading {interval} from {self.path}: {exc}", path=self.path
            ) from exc

    def __repr__(self) -> str:
        return f"PysamReadSource({str(self.path)!r})"


@dataclass
class WriteStats:
    """Record counts from one output pass."""

    written: int = 0
    dropped: int = 0
    passed_through: int = 0

    @property
    def considered(self) -> int:
        return self.written - self.passed_through + self.dropped


def index_path_for(path: Path) -> Path:
    suffix = ".crai" if path.suffix.lower() == ".cram" else ".bai"
    return path.with_name(path.name + suffix)


class CalibratedBamWriter:
    """Single-owner writer for calibrated alignments."""

    def __init__(
        self,
        input_path: PathLike,
        output_path: Optional[PathLike] = None,
        reference: Optional[PathLike] = None,
        cram: bool = False,
        write_index: bool = False,
        threads: int = 1,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.input_path = Path(input_path)
        self.output_path = Path(output_path) if output_path and str(output_path) != "-" else None
        self.reference = Path(reference) if reference else None
        self.cram = cram
        self.write_index = write_index
        self.threads = max(1, threads)
        self.logger = logger or get_logger("io.writer")

        if self.cram and self.reference is None:
            raise ConfigError("Writing CRAM output requires a reference FASTA (--reference)")
        if self.write_index and self.output_path is None:
            raise ConfigError("Cannot index output written to standard output")

    @property
    def to_stdout(self) -> bool:
        return self.output_path is None

    def _temporary_path(self) -> Path:
        assert self.output_path is not None
        return self.output_path.with_name(f".{self.output_path.name}.{os.getpid()}.tmp")

    def _open_output(self, template: pysam.AlignmentFile, path: str) -> pysam.AlignmentFile:
        mode = "wc" if self.cram else "wb"
        try:
            return pysam.AlignmentFile(
                path,
                mode,
                template=template,
                reference_filename=str(self.reference) if self.reference else None,
                threads=self.threads,
            )
        except (OSError, ValueError) as exc:
            raise AlignmentIOError(f"Unable to create output {path}: {exc}", path=path) from exc

    def write(
        self,
        decisions: Mapping[str, bool],
        calibrated_contigs: Collection[str],
        exclude_uncalibrated: bool = False,
    ) -> WriteStats:
        """
        Write the calibrated alignment file.

        Records on ``calibrated_contigs`` are written only when their read
        name was decided ``keep``; duplicates there are always dropped. Other
        contigs and unplaced unmapped reads are copied unchanged unless
        ``exclude_uncalibrated`` is set; a record whose mate lies on a
        calibrated contig follows its pair's decision there too. Contigs are
        visited in header order, so a sorted input yields a sorted output.

        Returns:
            WriteStats
        """
        calibrated = set(calibrated_contigs)
        stats = WriteStats()
        destination = "-" if self.to_stdout else str(self._temporary_path())
        committed = False

        try:
            with pysam.AlignmentFile(
                str(self.input_path),
                _read_mode(self.input_path),
                reference_filename=str(self.reference) if self.reference else None,
                threads=self.threads,
            ) as bam:
                with self._open_output(bam, destination) as out:
                    for contig in bam.references:
                        if contig in calibrated:
                            self._write_calibrated(bam, out, contig, decisions, stats)
                        elif not exclude_uncalibrated:
                            self._pass_through(bam, out, contig, calibrated, decisions, stats)
                    if not exclude_uncalibrated:
                        self._copy_unplaced(bam, out, stats)

            if not self.to_stdout:
                self._commit(Path(destination))
            committed = True
        except (OSError, ValueError, pysam.SamtoolsError) as exc:
            raise AlignmentIOError(f"Failed writing calibrated output: {exc}") from exc
        finally:
            if not committed:
                self._discard(destination)

        self.logger.info(
            LogTemplates.FILTERING_STATS.format(
                kept=stats.written - stats.passed_through,
                removed=stats.dropped,
                percent=(
                    100.0 * (stats.written - stats.passed_through) / stats.considered
                    if stats.considered
                    else 100.0
                ),
            )
        )
        return stats

    def _write_calibrated(self, bam, out, contig, decisions, stats: WriteStats) -> None:
        for record in bam.fetch(contig):
            if not record.is_duplicate and decisions.get(record.query_name, False):
                out.write(record)
                stats.written += 1
            else:
                stats.dropped += 1

    def _pass_through(self, bam, out, contig, calibrated, decisions, stats: WriteStats) -> None:
        for record in bam.fetch(contig):
            # A mate on a calibrated contig follows its pair's decision
            if record.next_reference_name in calibrated and not decisions.get(
                record.query_name, False
            ):
                stats.dropped += 1
                continue
            out.write(record)
            stats.written += 1
            stats.passed_through += 1

    def _copy_unplaced(self, bam, out, stats: WriteStats) -> None:
        if not bam.nocoordinate:
            return
        for record in bam.fetch(until_eof=True):
            if record.reference_id < 0:
                out.write(record)
                stats.written += 1
                stats.passed_through += 1

    def _commit(self, temporary: Path) -> None:
        assert self.output_path is not None
        if self.write_index:
            index = index_path_for(self.output_path)
            pysam.index(str(temporary), str(index))
            self.logger.info(LogTemplates.INDEX_CREATED.format(path=index))
        os.replace(temporary, self.output_path)
        self.logger.info(LogTemplates.FILE_CREATED.format(path=self.output_path))

    def remove_output(self) -> None:
        """Delete a committed output file and its index."""
        if self.output_path is None:
            return
        for path in (self.output_path, index_path_for(self.output_path)):
            try:
                path.unlink()
            except FileNotFoundError:
                pass
        self.logger.info(f"Removed incomplete output: {self.output_path}")

    def _discard(self, destination: str) -> None:
        if destination == "-":
            return
        try:
            Path(destination).unlink()
        except FileNotFoundError:
            pass

