"""Unit tests for CLI commands."""

import pandas as pd
import pysam
import pytest
from click.testing import CliRunner

from conftest import pair_reads
from sequinkit import __version__
from sequinkit.cli import cli, main

CONTIGS = [("chr1", 5000), ("chrQ", 2000)]


@pytest.fixture
def inputs(bam_factory, bed_factory):
    reads = []
    for i in range(20):
        reads += pair_reads(f"seq{i:03d}", "chrQ", 100)
    for i in range(5):
        reads += pair_reads(f"hum{i:03d}", "chr1", 1000)
    bam = bam_factory("in.bam", CONTIGS, reads)
    bed = bed_factory("sequins.bed", [("chrQ", 100, 200, "geneA")])
    return bam, bed


class TestCLIBasics:
    def test_cli_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("bedcov", "calibrate", "init-config", "validate"):
            assert command in result.output

    def test_cli_version(self):
        result = CliRunner().invoke(cli, ["-V"])
        assert result.exit_code == 0
        assert f"SequinKit {__version__}" in result.output

    def test_unknown_option_is_usage_error(self):
        result = CliRunner().invoke(cli, ["bedcov", "--bogus"])
        assert result.exit_code == 2

    def test_main_returns_exit_code(self):
        assert main(["--version"]) == 0
        assert main(["bedcov", "--bogus"]) == 2


class TestInitConfig:
    def test_stdout(self):
        result = CliRunner().invoke(cli, ["init-config", "--stdout"])
        assert result.exit_code == 0
        assert "calibrate:" in result.output
        assert "max_depth: 8000" in result.output

    def test_output_file(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["init-config", "--output-file", "custom.yaml"])
            assert result.exit_code == 0
            with open("custom.yaml", encoding="utf-8") as handle:
                assert "SequinKit Configuration" in handle.read()


class TestValidate:
    def test_validate(self):
        result = CliRunner().invoke(cli, ["validate"])
        assert result.exit_code == 0
        assert "All checks passed" in result.output


class TestBedcovCommand:
    def test_writes_csv(self, inputs, tmp_path):
        bam, bed = inputs
        out = tmp_path / "cov.csv"
        result = CliRunner().invoke(
            cli, ["bedcov", str(bed), str(bam), "-t", "10,50", "-d", "0", "-o", str(out)]
        )
        assert result.exit_code == 0, result.output
        lines = out.read_text().splitlines()
        assert lines[0] == "name,chrom,beg,end,min,max,mean,std,cv,pct_gt_10,pct_gt_50"
        assert lines[1] == "geneA,chrQ,100,200,40,40,40.00,0.00,0.00,1.00,0.00"

    def test_max_depth_caps(self, inputs, tmp_path):
        bam, bed = inputs
        out = tmp_path / "cov.csv"
        result = CliRunner().invoke(cli, ["bedcov", str(bed), str(bam), "-d", "8", "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert pd.read_csv(out).loc[0, "max"] == 8

    def test_config_file_values(self, inputs, tmp_path):
        bam, bed = inputs
        cfg = tmp_path / "cfg.yaml"
        cfg.write_text("bedcov:\n  max_depth: 5\n  thresholds: [1]\n")
        out = tmp_path / "cov.csv"
        result = CliRunner().invoke(
            cli, ["bedcov", str(bed), str(bam), "-c", str(cfg), "-o", str(out)]
        )
        assert result.exit_code == 0, result.output
        table = pd.read_csv(out)
        assert table.loc[0, "max"] == 5
        assert "pct_gt_1" in table.columns

    def test_cli_overrides_config(self, inputs, tmp_path):
        bam, bed = inputs
        cfg = tmp_path / "cfg.yaml"
        cfg.write_text("bedcov:\n  max_depth: 5\n")
        out = tmp_path / "cov.csv"
        result = CliRunner().invoke(
            cli, ["bedcov", str(bed), str(bam), "-c", str(cfg), "-d", "0", "-o", str(out)]
        )
        assert result.exit_code == 0, result.output
        assert pd.read_csv(out).loc[0, "max"] == 40

    def test_bad_thresholds(self, inputs):
        bam, bed = inputs
        result = CliRunner().invoke(cli, ["bedcov", str(bed), str(bam), "-t", "ten"])
        assert result.exit_code == 2

    def test_bad_config_key(self, inputs, tmp_path):
        bam, bed = inputs
        cfg = tmp_path / "cfg.yaml"
        cfg.write_text("bedcov:\n  colour: red\n")
        result = CliRunner().invoke(cli, ["bedcov", str(bed), str(bam), "-c", str(cfg)])
        assert result.exit_code == 1

    def test_malformed_bed(self, inputs, tmp_path):
        bam, _ = inputs
        bed = tmp_path / "bad.bed"
        bed.write_text("chrQ\t100\t200\n")
        result = CliRunner().invoke(cli, ["bedcov", str(bed), str(bam)])
        assert result.exit_code == 1


class TestCalibrateCommand:
    def test_calibrate_to_file(self, inputs, tmp_path):
        bam, bed = inputs
        out = tmp_path / "out.bam"
        summary = tmp_path / "summary.csv"
        result = CliRunner().invoke(
            cli,
            [
                "calibrate", str(bam), "-b", str(bed), "-f", "20", "-o", str(out),
                "--write-index", "--summary-report", str(summary), "-s", "1",
            ],
        )
        assert result.exit_code == 0, result.output
        assert out.exists()
        assert (tmp_path / "out.bam.bai").exists()
        row = pd.read_csv(summary).iloc[0]
        assert row["uncalibrated_coverage"] == pytest.approx(40.0)
        assert row["target_coverage"] == pytest.approx(20.0)
        with pysam.AlignmentFile(str(out), "rb") as handle:
            kept = [r.query_name for r in handle.fetch("chrQ")]
        assert row["calibrated_coverage"] == pytest.approx(len(kept))

    def test_summary_without_index_fails_early(self, inputs, tmp_path):
        bam, bed = inputs
        out = tmp_path / "out.bam"
        result = CliRunner().invoke(
            cli,
            ["calibrate", str(bam), "-b", str(bed), "-o", str(out),
             "--summary-report", str(tmp_path / "s.csv")],
        )
        assert result.exit_code == 1
        assert not out.exists()

    def test_cram_without_reference(self, inputs, tmp_path):
        bam, bed = inputs
        result = CliRunner().invoke(
            cli, ["calibrate", str(bam), "-b", str(bed), "-C", "-o", str(tmp_path / "o.cram")]
        )
        assert result.exit_code == 1

    def test_unmatched_sample_bed(self, inputs, bed_factory, tmp_path):
        bam, bed = inputs
        sample = bed_factory("sample.bed", [("chr1", 1000, 1100, "other")])
        out = tmp_path / "out.bam"
        result = CliRunner().invoke(
            cli, ["calibrate", str(bam), "-b", str(bed), "-S", str(sample), "-o", str(out)]
        )
        assert result.exit_code == 1
        assert not out.exists()

    def test_missing_bed_option(self, inputs):
        bam, _ = inputs
        result = CliRunner().invoke(cli, ["calibrate", str(bam)])
        assert result.exit_code == 2
