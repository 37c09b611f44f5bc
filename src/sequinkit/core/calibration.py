"""
Calibration Engine - target depths, retain fractions and keep/drop decisions.

Each subject (sequin) region gets an immutable RegionCalibrationPlan:

- target depth: a fixed fold coverage, or the uncapped mean coverage of the
  matched sample region;
- observed depth: the uncapped mean coverage of the sequin region;
- retain fraction: min(1, target / observed), 0 when nothing was observed;
- seed: derived from the base seed and the region's identity.

Reads are then grouped by pair key (read name) and each key gets exactly one
uniform draw from a generator private to the region. Keys are drawn in
sorted order so decisions never depend on record arrival order or on which
worker thread handled the region. Reads are only ever removed.
"""

from __future__ import annotations

import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set

import numpy as np

from sequinkit.constants import DEFAULT_FOLD_COVERAGE, DEFAULT_SEED
from sequinkit.core.coverage import DEFAULT_POLICY, ReadPolicy, ReadSource, mean_depth
from sequinkit.core.depth import ReadSpan
from sequinkit.core.region import Interval, RegionIndex
from sequinkit.exceptions import ConfigError
from sequinkit.utils.logging import LogTemplates, get_logger
from sequinkit.utils.progress import iter_progress


@dataclass(frozen=True)
class CalibrationMode:
    """Where target depths come from: a fixed value or the sample regions."""

    fixed_depth: Optional[float] = None

    @classmethod
    def fixed(cls, depth: float) -> "CalibrationMode":
        if depth < 0:
            raise ConfigError(f"Fold coverage must be >= 0, got {depth}")
        return cls(fixed_depth=float(depth))

    @classmethod
    def derived(cls) -> "CalibrationMode":
        return cls(fixed_depth=None)

    @classmethod
    def resolve(cls, fold_coverage: Optional[float], has_reference: bool) -> "CalibrationMode":
        """Pick the mode from user options; the two sources are exclusive."""
        if has_reference and fold_coverage is not None:
            raise ConfigError(
                "A fixed fold coverage and a sample BED are mutually exclusive; "
                "supply only one"
            )
        if has_reference:
            return cls.derived()
        return cls.fixed(DEFAULT_FOLD_COVERAGE if fold_coverage is None else fold_coverage)

    @property
    def is_derived(self) -> bool:
        return self.fixed_depth is None

    def measurement_flank(self, flank: int) -> int:
        """Flank applied to sequin regions; sample-derived targets measure the whole region."""
        return 0 if self.is_derived else flank

    def __str__(self) -> str:
        if self.is_derived:
            return "sample-derived"
        return f"fixed({self.fixed_depth:g}x)"


@dataclass(frozen=True)
class RegionCalibrationPlan:
    region: Interval
    target_depth: float
    observed_depth: float
    retain_fraction: float
    seed: int

    @property
    def keeps_everything(self) -> bool:
        return self.retain_fraction >= 1.0

    @property
    def has_coverage(self) -> bool:
        return self.observed_depth > 0


@dataclass(frozen=True)
class ReadDecision:
    key: str
    keep: bool


@dataclass
class RegionResult:
    """Decisions for all pair keys seen in one region."""

    plan: RegionCalibrationPlan
    decisions: List[ReadDecision] = field(default_factory=list)

    @property
    def kept(self) -> int:
        return sum(1 for d in self.decisions if d.keep)

    @property
    def dropped(self) -> int:
        return len(self.decisions) - self.kept


@dataclass
class CalibrationResult:
    """Merged outcome of a calibration run, in subject-region order."""

    results: List[RegionResult]
    decisions: Dict[str, bool]

    @property
    def plans(self) -> List[RegionCalibrationPlan]:
        return [r.plan for r in self.results]

    @property
    def kept_keys(self) -> Set[str]:
        return {key for key, keep in self.decisions.items() if keep}

    def is_kept(self, key: str) -> bool:
        return self.decisions.get(key, False)


def derive_region_seed(base_seed: int, region: Interval) -> int:
    """Stable 64-bit seed from the base seed and the region's identity."""
    identity = f"{base_seed}:{region.name}:{region.chrom}:{region.start}:{region.end}"
    digest = hashlib.sha256(identity.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "little")


def compute_retain_fraction(target_depth: float, observed_depth: float) -> float:
    """Fraction of pairs to keep so observed depth falls to the target."""
    if observed_depth <= 0:
        return 0.0
    return min(1.0, max(0.0, target_depth / observed_depth))


def build_plan(
    region: Interval,
    mode: CalibrationMode,
    sequin_source: ReadSource,
    sample_source: Optional[ReadSource] = None,
    reference: Optional[Interval] = None,
    base_seed: int = DEFAULT_SEED,
    policy: ReadPolicy = DEFAULT_POLICY,
    flank: int = 0,
) -> RegionCalibrationPlan:
    """
    Create the calibration plan for one subject region.

    Args:
        region: Sequin region to calibrate
        mode: Fixed or sample-derived targets
        sequin_source: Reads used for the observed depth
        sample_source: Reads used for the target depth in derived mode
        reference: Matched sample region (derived mode only)
        base_seed: User supplied seed
        policy: Read counting policy for both depth measurements
        flank: Bases trimmed from each end of the sequin region before
            measuring; ignored for sample-derived targets

    Returns:
        RegionCalibrationPlan
    """
    flank = mode.measurement_flank(flank)
    if mode.is_derived:
        if reference is None:
            raise ConfigError(f"Region '{region.name}' ({region}) has no matching sample region")
        target = mean_depth(reference, sample_source or sequin_source, policy=policy)
    else:
        target = float(mode.fixed_depth)

    observed = mean_depth(region.trimmed(flank), sequin_source, policy=policy)
    return RegionCalibrationPlan(
        region=region,
        target_depth=target,
        observed_depth=observed,
        retain_fraction=compute_retain_fraction(target, observed),
        seed=derive_region_seed(base_seed, region),
    )


def decide_region(plan: RegionCalibrationPlan, spans: Iterable[ReadSpan]) -> List[ReadDecision]:
    """
    Keep/drop decision for every pair key among ``spans``.

    Unmapped records do not contribute keys. Both mates share a key, so a
    pair is always kept or dropped as a unit.
    """
    keys = sorted({span.mate_id for span in spans if span.mapped})
    if not keys:
        return []
    if plan.keeps_everything:
        return [ReadDecision(key, True) for key in keys]

    rng = np.random.default_rng(plan.seed)
    draws = rng.random(len(keys))
    return [
        ReadDecision(key, bool(draw < plan.retain_fraction)) for key, draw in zip(keys, draws)
    ]


def merge_decisions(results: Sequence[RegionResult]) -> Dict[str, bool]:
    """Merge per-region decisions; the first region (subject order) owning a key wins."""
    merged: Dict[str, bool] = {}
    for result in results:
        for decision in result.decisions:
            merged.setdefault(decision.key, decision.keep)
    return merged


def _log_plan(logger: logging.Logger, plan: RegionCalibrationPlan) -> None:
    region = plan.region
    if not plan.has_coverage:
        logger.info(LogTemplates.REGION_AT_TARGET.format(name=region.name, region=region))
        return
    logger.info(
        LogTemplates.REGION_CALIBRATION.format(
            name=region.name,
            region=region,
            observed=plan.observed_depth,
            target=plan.target_depth,
            fraction=plan.retain_fraction,
        )
    )


def calibrate_regions(
    index: RegionIndex,
    mode: CalibrationMode,
    sequin_source: ReadSource,
    sample_source: Optional[ReadSource] = None,
    seed: int = DEFAULT_SEED,
    policy: ReadPolicy = DEFAULT_POLICY,
    flank: int = 0,
    threads: int = 1,
    progress: bool = False,
    logger: Optional[logging.Logger] = None,
) -> CalibrationResult:
    """
    Plan and decide every subject region.

    Plans for all regions are built first, so a configuration problem in any
    region aborts the run before a single keep/drop decision is made. Work is
    spread over a bounded thread pool; results are collected in subject order.

    Args:
        index: Subject regions, matched to sample regions in derived mode
        mode: Fixed or sample-derived targets
        sequin_source: Reads on the sequin (decoy) regions
        sample_source: Reads on the sample regions; defaults to ``sequin_source``
        seed: Base seed for the per-region generators
        policy: Read counting policy for depth measurements
        flank: Bases trimmed from each end of sequin regions when measuring
            depth (fixed mode only)
        threads: Worker count for region-level parallelism
        progress: Show tqdm progress bars
        logger: Logger to report to

    Returns:
        CalibrationResult with one RegionResult per region
    """
    logger = logger or get_logger("calibration")
    if mode.is_derived and not index.is_matched:
        raise ConfigError("Sample-derived calibration requires sample regions")
    if not mode.is_derived and index.is_matched:
        raise ConfigError("Fixed-depth calibration cannot use sample regions")

    # Surface flank problems before reading anything
    flank = mode.measurement_flank(flank)
    for region in index:
        region.trimmed(flank)

    sample_source = sample_source or sequin_source
    regions = list(index.pairs())
    workers = max(1, min(threads, len(regions) or 1))

    def plan_one(pair):
        region, reference = pair
        return build_plan(
            region,
            mode,
            sequin_source,
            sample_source=sample_source,
            reference=reference,
            base_seed=seed,
            policy=policy,
            flank=flank,
        )

    def decide_one(plan: RegionCalibrationPlan) -> RegionResult:
        return RegionResult(plan=plan, decisions=decide_region(plan, sequin_source.fetch(plan.region)))

    logger.info(f"Calibrating {len(regions)} regions ({mode}, seed={seed}, threads={workers})")
    with ThreadPoolExecutor(max_workers=workers) as executor:
        plans = list(
            iter_progress(
                executor.map(plan_one, regions),
                total=len(regions),
                desc="Planning",
                enabled=progress,
            )
        )
        for plan in plans:
            _log_plan(logger, plan)
        results = list(
            iter_progress(
                executor.map(decide_one, plans),
                total=len(plans),
                desc="Sampling",
                enabled=progress,
            )
        )

    for result in results:
        logger.debug(
            f"{result.plan.region.name}: {result.kept} pairs kept, {result.dropped} dropped"
        )
    return CalibrationResult(results=results, decisions=merge_decisions(results))
