"""Pytest configuration for SequinKit tests."""

import logging
import sys
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

import pytest

# Add src directory to Python path
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from sequinkit.core.depth import ReadSpan
from sequinkit.core.region import Interval


# SAM flags for a properly paired forward/reverse pair
FIRST_MATE = 0x1 | 0x2 | 0x20 | 0x40
SECOND_MATE = 0x1 | 0x2 | 0x10 | 0x80


@pytest.fixture(autouse=True)
def reset_logging_after_test():
    """Reset sequinkit logger state after each test.

    setup_logging() sets propagate=False, which would break caplog in
    subsequent tests.
    """
    yield
    app_logger = logging.getLogger("sequinkit")
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
    app_logger.setLevel(logging.NOTSET)
    app_logger.propagate = True


class FakeReadSource:
    """In-memory ReadSource: returns every span overlapping the interval."""

    def __init__(self, spans: Iterable[ReadSpan] = ()):
        self.spans: List[ReadSpan] = list(spans)
        self.fetched: List[Interval] = []

    def add(self, span: ReadSpan) -> None:
        self.spans.append(span)

    def fetch(self, interval: Interval):
        self.fetched.append(interval)
        return [
            s
            for s in self.spans
            if s.chrom == interval.chrom and s.start < interval.end and s.end > interval.start
        ]


def pair_spans(name: str, chrom: str, start: int, length: int, mapq: int = 60) -> List[ReadSpan]:
    """Both mates of a pair stacked on the same footprint."""
    return [
        ReadSpan(chrom, start, start + length, name, flag=FIRST_MATE, mapq=mapq),
        ReadSpan(chrom, start, start + length, name, flag=SECOND_MATE, mapq=mapq),
    ]


@pytest.fixture
def fake_source():
    return FakeReadSource()


class Read(NamedTuple):
    """One record for a test BAM; chrom None means unplaced and unmapped."""

    name: str
    chrom: Optional[str]
    start: int
    length: int = 100
    flag: int = 0
    mapq: int = 60
    cigar: Optional[List[Tuple[int, int]]] = None
    mate: Optional[Tuple[str, int]] = None


def pair_reads(name: str, chrom: str, start: int, length: int = 100, mapq: int = 60) -> List[Read]:
    return [
        Read(name, chrom, start, length, FIRST_MATE, mapq),
        Read(name, chrom, start, length, SECOND_MATE, mapq),
    ]


def write_bam(
    path: Path,
    contigs: Sequence[Tuple[str, int]],
    reads: Iterable[Read],
    index: bool = True,
) -> Path:
    """Write a small coordinate-sorted BAM (and its index) with pysam."""
    import pysam

    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": name, "LN": length} for name, length in contigs],
    }
    order = {name: i for i, (name, _) in enumerate(contigs)}

    def sort_key(read: Read):
        if read.chrom is None:
            return (len(order), 0, read.name)
        return (order[read.chrom], read.start, read.name)

    with pysam.AlignmentFile(str(path), "wb", header=header) as out:
        for read in sorted(reads, key=sort_key):
            cigar = read.cigar or [(0, read.length)]
            # M, I, S, = and X consume query bases
            query_length = sum(n for op, n in cigar if op in (0, 1, 4, 7, 8))
            segment = pysam.AlignedSegment(out.header)
            segment.query_name = read.name
            segment.query_sequence = "A" * query_length
            segment.query_qualities = pysam.qualitystring_to_array("I" * query_length)
            if read.chrom is None:
                segment.flag = read.flag | 0x4
                segment.reference_id = -1
                segment.reference_start = -1
                segment.mapping_quality = 0
            else:
                tid = order[read.chrom]
                segment.flag = read.flag
                segment.reference_id = tid
                segment.reference_start = read.start
                segment.mapping_quality = read.mapq
                segment.cigartuples = cigar
                if read.flag & 0x1:
                    mate_chrom, mate_start = read.mate or (read.chrom, read.start)
                    segment.next_reference_id = order[mate_chrom]
                    segment.next_reference_start = mate_start
            out.write(segment)

    if index:
        pysam.index(str(path))
    return path


@pytest.fixture
def bam_factory(tmp_path):
    """Build indexed BAMs inside tmp_path."""

    def factory(name: str, contigs, reads, index: bool = True) -> Path:
        return write_bam(tmp_path / name, contigs, reads, index=index)

    return factory


@pytest.fixture
def bed_factory(tmp_path):
    """Write BED files inside tmp_path from (chrom, start, end, name) rows."""

    def factory(name: str, rows) -> Path:
        path = tmp_path / name
        path.write_text("".join(f"{c}\t{s}\t{e}\t{n}\n" for c, s, e, n in rows))
        return path

    return factory
