"""
Region Index - interval model, BED loading and name matching.

Subject regions (sequins on the decoy chromosome) are optionally matched to
reference regions (the sample loci they mimic) purely by name. Matching is
1:1; duplicate or missing names are surfaced as ConfigError.
"""

from __future__ import annotations

import bisect
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from sequinkit.exceptions import ConfigError, DataError
from sequinkit.utils.logging import LogTemplates, get_logger

logger = get_logger("region")

BED_HEADER_PREFIXES = ("#", "track", "browser")


@dataclass(frozen=True)
class Interval:
    """A named half-open genomic interval (0-based start, exclusive end)."""

    chrom: str
    start: int
    end: int
    name: str

    def __post_init__(self) -> None:
        if self.start < 0:
            raise DataError(f"Interval {self.name} has a negative start: {self.start}")
        if self.start >= self.end:
            raise DataError(
                f"Interval {self.name} ({self.chrom}:{self.start}-{self.end}) "
                f"must have start < end"
            )

    def __str__(self) -> str:
        return f"{self.chrom}:{self.start}-{self.end}"

    def __len__(self) -> int:
        return self.end - self.start

    def overlaps(self, chrom: str, start: int, end: int) -> bool:
        return self.chrom == chrom and start < self.end and end > self.start

    def trimmed(self, flank: int) -> "Interval":
        """Return a copy with ``flank`` bases removed from both ends."""
        if flank < 0:
            raise ConfigError(f"Flank must be >= 0, got {flank}")
        if flank == 0:
            return self
        if self.start + flank >= self.end - flank:
            raise ConfigError(
                f"Flank of {flank} leaves no bases in region {self.name} ({self})"
            )
        return Interval(self.chrom, self.start + flank, self.end - flank, self.name)


def _parse_bed_lines(lines, source: str) -> List[Interval]:
    intervals: List[Interval] = []
    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith(BED_HEADER_PREFIXES):
            continue
        fields = line.split()
        if len(fields) < 4:
            raise ConfigError(
                f"Incorrect number of columns detected, expected >= 4 found "
                f"{len(fields)} ({source}, line = {lineno})"
            )
        chrom, start_str, end_str, name = fields[:4]
        try:
            start = int(start_str)
        except ValueError:
            raise ConfigError(
                f"Start column is not an integer: is {start_str} ({source}, line = {lineno})"
            ) from None
        try:
            end = int(end_str)
        except ValueError:
            raise ConfigError(
                f"End column is not an integer: is {end_str} ({source}, line = {lineno})"
            ) from None
        try:
            intervals.append(Interval(chrom, start, end, name))
        except DataError as exc:
            raise ConfigError(f"{exc} ({source}, line = {lineno})") from exc
    return intervals


def load_bed(source: Union[str, Path, IO[str]]) -> List[Interval]:
    """
    Load 4-column named intervals from a BED file.

    Args:
        source: Path to a BED file or an open text handle

    Returns:
        Intervals in file order

    Raises:
        ConfigError: If a record is malformed or the file cannot be read
    """
    if hasattr(source, "read"):
        return _parse_bed_lines(source, getattr(source, "name", "<stream>"))

    path = Path(source)
    try:
        with open(path, "r", encoding="utf-8") as handle:
            intervals = _parse_bed_lines(handle, str(path))
    except OSError as exc:
        raise ConfigError(f"Cannot read BED file {path}: {exc}") from exc
    logger.info(LogTemplates.REGIONS_LOADED.format(count=len(intervals), path=path))
    return intervals


class RegionIndex:
    """Per-chromosome lookup over subject regions with optional name matching."""

    def __init__(
        self,
        subject: Sequence[Interval],
        reference: Optional[Sequence[Interval]] = None,
    ) -> None:
        self.subject: List[Interval] = list(subject)
        self.reference: Optional[List[Interval]] = (
            list(reference) if reference is not None else None
        )

        seen: Dict[str, Interval] = {}
        for region in self.subject:
            if region.name in seen:
                raise ConfigError(
                    f"Duplicate region name '{region.name}' in subject regions "
                    f"({seen[region.name]} and {region})"
                )
            seen[region.name] = region

        self._by_chrom: Dict[str, List[Interval]] = defaultdict(list)
        for region in self.subject:
            self._by_chrom[region.chrom].append(region)
        for regions in self._by_chrom.values():
            regions.sort(key=lambda r: (r.start, r.end))
        self._starts = {
            chrom: [r.start for r in regions] for chrom, regions in self._by_chrom.items()
        }

        self._matches: Dict[str, Interval] = {}
        if self.reference is not None:
            self._matches = self._match_by_name(self.reference)

    def _match_by_name(self, reference: Sequence[Interval]) -> Dict[str, Interval]:
        by_name: Dict[str, List[Interval]] = defaultdict(list)
        for region in reference:
            by_name[region.name].append(region)

        matches: Dict[str, Interval] = {}
        for region in self.subject:
            candidates = by_name.get(region.name, [])
            if not candidates:
                raise ConfigError(
                    f"Region '{region.name}' ({region}) has no matching reference region"
                )
            if len(candidates) > 1:
                locations = ", ".join(str(c) for c in candidates)
                raise ConfigError(
                    f"Region '{region.name}' matches {len(candidates)} reference "
                    f"regions ({locations}); names must be unique"
                )
            matches[region.name] = candidates[0]
        return matches

    @property
    def is_matched(self) -> bool:
        return self.reference is not None

    @property
    def chromosomes(self) -> List[str]:
        """Chromosomes carrying at least one subject region, first-seen order."""
        return list(dict.fromkeys(r.chrom for r in self.subject))

    def __len__(self) -> int:
        return len(self.subject)

    def __iter__(self) -> Iterator[Interval]:
        return iter(self.subject)

    def by_chrom(self, chrom: str) -> List[Interval]:
        return list(self._by_chrom.get(chrom, []))

    def overlapping(self, chrom: str, start: int, end: int) -> List[Interval]:
        """Subject regions overlapping the half-open range on ``chrom``."""
        regions = self._by_chrom.get(chrom)
        if not regions:
            return []
        # Regions starting at or after ``end`` cannot overlap
        stop = bisect.bisect_left(self._starts[chrom], end)
        return [r for r in regions[:stop] if r.end > start]

    def match(self, region: Interval) -> Optional[Interval]:
        """Reference region matched to ``region``; None in unmatched mode."""
        if self.reference is None:
            return None
        return self._matches[region.name]

    def pairs(self) -> Iterator[Tuple[Interval, Optional[Interval]]]:
        for region in self.subject:
            yield region, self.match(region)
