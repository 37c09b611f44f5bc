"""Tests for calibration plans and read pair decisions."""

import pytest

from conftest import FakeReadSource, pair_spans
from sequinkit.core.calibration import (
    CalibrationMode,
    RegionCalibrationPlan,
    RegionResult,
    ReadDecision,
    build_plan,
    calibrate_regions,
    compute_retain_fraction,
    decide_region,
    derive_region_seed,
    merge_decisions,
)
from sequinkit.core.coverage import ReadPolicy
from sequinkit.core.depth import ReadSpan
from sequinkit.core.region import Interval, RegionIndex
from sequinkit.exceptions import ConfigError

GENE_A = Interval("chrQ", 100, 200, "geneA")


def stacked_pairs(region, count, prefix="pair"):
    """``count`` pairs covering the whole region: depth is 2 * count."""
    spans = []
    for i in range(count):
        spans.extend(pair_spans(f"{prefix}{i:03d}", region.chrom, region.start, len(region)))
    return spans


@pytest.fixture
def gene_a_source():
    # 50 pairs of 100bp reads over chrQ:100-200 -> mean depth 100
    return FakeReadSource(stacked_pairs(GENE_A, 50))


def plan_for(fraction, seed=1):
    return RegionCalibrationPlan(GENE_A, 50.0, 100.0, fraction, seed)


class TestCalibrationMode:
    def test_default_is_fixed_40(self):
        mode = CalibrationMode.resolve(None, has_reference=False)
        assert not mode.is_derived
        assert mode.fixed_depth == 40.0

    def test_reference_selects_derived(self):
        assert CalibrationMode.resolve(None, has_reference=True).is_derived

    def test_fixed_and_derived_are_exclusive(self):
        with pytest.raises(ConfigError, match="mutually exclusive"):
            CalibrationMode.resolve(30.0, has_reference=True)

    def test_negative_fixed_depth(self):
        with pytest.raises(ConfigError):
            CalibrationMode.fixed(-1)

    def test_str(self):
        assert str(CalibrationMode.fixed(30)) == "fixed(30x)"
        assert str(CalibrationMode.derived()) == "sample-derived"


class TestRetainFraction:
    @pytest.mark.parametrize(
        "target,observed,expected",
        [(50, 100, 0.5), (100, 100, 1.0), (200, 100, 1.0), (0, 100, 0.0), (40, 0, 0.0)],
    )
    def test_values(self, target, observed, expected):
        assert compute_retain_fraction(target, observed) == pytest.approx(expected)


class TestRegionSeed:
    def test_stable_and_region_specific(self):
        a = derive_region_seed(5678, GENE_A)
        assert a == derive_region_seed(5678, Interval("chrQ", 100, 200, "geneA"))
        assert a != derive_region_seed(5679, GENE_A)
        assert a != derive_region_seed(5678, Interval("chrQ", 100, 200, "geneB"))
        assert 0 <= a < 2**64


class TestBuildPlan:
    def test_fixed_plan(self, gene_a_source):
        plan = build_plan(GENE_A, CalibrationMode.fixed(50), gene_a_source, base_seed=7)
        assert plan.target_depth == 50.0
        assert plan.observed_depth == pytest.approx(100.0)
        assert plan.retain_fraction == pytest.approx(0.5)
        assert plan.seed == derive_region_seed(7, GENE_A)
        assert not plan.keeps_everything

    def test_target_above_observed_keeps_everything(self, gene_a_source):
        plan = build_plan(GENE_A, CalibrationMode.fixed(500), gene_a_source)
        assert plan.retain_fraction == 1.0
        assert plan.keeps_everything

    def test_zero_coverage_region(self, fake_source):
        plan = build_plan(GENE_A, CalibrationMode.fixed(40), fake_source)
        assert plan.observed_depth == 0.0
        assert plan.retain_fraction == 0.0
        assert not plan.has_coverage

    def test_derived_target_from_sample_region(self, gene_a_source):
        sample = Interval("chr1", 1000, 1100, "geneA")
        for span in stacked_pairs(sample, 10, prefix="sample"):
            gene_a_source.add(span)
        plan = build_plan(
            GENE_A, CalibrationMode.derived(), gene_a_source, reference=sample
        )
        assert plan.target_depth == pytest.approx(20.0)
        assert plan.retain_fraction == pytest.approx(0.2)

    def test_derived_without_reference(self, gene_a_source):
        with pytest.raises(ConfigError, match="no matching sample region"):
            build_plan(GENE_A, CalibrationMode.derived(), gene_a_source)

    def test_flank_restricts_observed_depth(self):
        source = FakeReadSource(pair_spans("p", "chrQ", 100, 10))
        assert build_plan(GENE_A, CalibrationMode.fixed(1), source).observed_depth > 0
        plan = build_plan(GENE_A, CalibrationMode.fixed(1), source, flank=10)
        assert plan.observed_depth == 0.0

    def test_derived_mode_measures_whole_region(self):
        # Reads only over chrQ:100-120, which a flank of 20 would trim away
        source = FakeReadSource(pair_spans("edge", "chrQ", 100, 20))
        sample = Interval("chr1", 1000, 1100, "geneA")
        source.add(ReadSpan("chr1", 1000, 1100, "sample", flag=0x2, mapq=60))
        plan = build_plan(
            GENE_A, CalibrationMode.derived(), source, reference=sample, flank=20
        )
        assert plan.observed_depth == pytest.approx(0.4)
        assert plan.retain_fraction == 1.0
        assert CalibrationMode.derived().measurement_flank(20) == 0
        assert CalibrationMode.fixed(40).measurement_flank(20) == 20


class TestDecideRegion:
    def test_one_decision_per_pair(self, gene_a_source):
        decisions = decide_region(plan_for(0.5), gene_a_source.fetch(GENE_A))
        assert len(decisions) == 50
        assert len({d.key for d in decisions}) == 50

    def test_deterministic_for_same_seed(self, gene_a_source):
        spans = gene_a_source.fetch(GENE_A)
        first = decide_region(plan_for(0.5, seed=99), spans)
        second = decide_region(plan_for(0.5, seed=99), list(reversed(spans)))
        assert first == second

    def test_keep_everything(self, gene_a_source):
        decisions = decide_region(plan_for(1.0), gene_a_source.fetch(GENE_A))
        assert all(d.keep for d in decisions)

    def test_keep_nothing(self, gene_a_source):
        decisions = decide_region(plan_for(0.0), gene_a_source.fetch(GENE_A))
        assert not any(d.keep for d in decisions)

    def test_monotone_in_fraction(self, gene_a_source):
        spans = gene_a_source.fetch(GENE_A)
        low = {d.key for d in decide_region(plan_for(0.3, seed=5), spans) if d.keep}
        high = {d.key for d in decide_region(plan_for(0.7, seed=5), spans) if d.keep}
        assert low <= high

    def test_unmapped_records_add_no_keys(self):
        spans = [ReadSpan("chrQ", 150, 151, "orphan", flag=0x4)]
        assert decide_region(plan_for(0.5), spans) == []


class TestMergeDecisions:
    def test_first_region_wins(self):
        plan = plan_for(0.5)
        first = RegionResult(plan, [ReadDecision("shared", True), ReadDecision("a", False)])
        second = RegionResult(plan, [ReadDecision("shared", False), ReadDecision("b", True)])
        assert merge_decisions([first, second]) == {"shared": True, "a": False, "b": True}


class TestCalibrateRegions:
    def test_half_target_keeps_about_half(self, gene_a_source):
        result = calibrate_regions(
            RegionIndex([GENE_A]), CalibrationMode.fixed(50), gene_a_source, seed=5678
        )
        kept = len(result.kept_keys)
        assert result.plans[0].retain_fraction == pytest.approx(0.5)
        assert 10 <= kept <= 40
        assert result.results[0].kept == kept
        assert result.results[0].dropped == 50 - kept

    def test_same_seed_same_decisions(self, gene_a_source):
        index = RegionIndex([GENE_A])
        runs = [
            calibrate_regions(index, CalibrationMode.fixed(30), gene_a_source, seed=11, threads=t)
            for t in (1, 4)
        ]
        assert runs[0].decisions == runs[1].decisions

    def test_target_met_keeps_every_pair(self, gene_a_source):
        result = calibrate_regions(
            RegionIndex([GENE_A]), CalibrationMode.fixed(100), gene_a_source
        )
        assert len(result.kept_keys) == 50
        assert all(result.is_kept(k) for k in result.decisions)

    def test_multiple_regions_in_subject_order(self):
        gene_b = Interval("chrQ", 500, 600, "geneB")
        source = FakeReadSource(stacked_pairs(GENE_A, 20, "a") + stacked_pairs(gene_b, 5, "b"))
        result = calibrate_regions(
            RegionIndex([gene_b, GENE_A]), CalibrationMode.fixed(20), source, threads=2
        )
        assert [p.region.name for p in result.plans] == ["geneB", "geneA"]
        assert result.plans[0].keeps_everything
        assert all(result.is_kept(f"b{i:03d}") for i in range(5))

    def test_derived_mode_with_unmatched_index(self, gene_a_source):
        with pytest.raises(ConfigError, match="requires sample regions"):
            calibrate_regions(RegionIndex([GENE_A]), CalibrationMode.derived(), gene_a_source)

    def test_unmatched_region_fails_before_reads(self, gene_a_source):
        with pytest.raises(ConfigError, match="geneA"):
            RegionIndex([GENE_A], [Interval("chr1", 0, 100, "geneB")])
        assert gene_a_source.fetched == []

    def test_flank_error_before_reads(self, gene_a_source):
        with pytest.raises(ConfigError, match="leaves no bases"):
            calibrate_regions(
                RegionIndex([GENE_A]), CalibrationMode.fixed(10), gene_a_source, flank=60
            )
        assert gene_a_source.fetched == []

    def test_min_mapq_policy(self):
        source = FakeReadSource(
            [s for i in range(10) for s in pair_spans(f"q{i}", "chrQ", 100, 100, mapq=5)]
        )
        result = calibrate_regions(
            RegionIndex([GENE_A]),
            CalibrationMode.fixed(10),
            source,
            policy=ReadPolicy(min_mapq=10),
        )
        assert result.plans[0].observed_depth == 0.0
        assert result.kept_keys == set()
