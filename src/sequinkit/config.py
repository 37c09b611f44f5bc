"""Configuration management for SequinKit."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from sequinkit.constants import (
    DEFAULT_CALIBRATION_MIN_MAPQ,
    DEFAULT_FLANK,
    DEFAULT_MAX_DEPTH,
    DEFAULT_SEED,
)
from sequinkit.exceptions import ConfigError


@dataclass
class RuntimeConfig:
    """Runtime configuration."""

    log_level: str = "WARNING"
    log_file: Optional[Path] = None
    # Enable tqdm progress bars on stderr
    enable_progress: bool = False


@dataclass
class PerformanceConfig:
    """Performance-related configuration."""

    threads: int = 1


@dataclass
class BedcovConfig:
    """Coverage statistics (bedcov) parameters."""

    min_mapq: int = 0
    flank: int = DEFAULT_FLANK
    # 0 removes the per-base depth limit
    max_depth: int = DEFAULT_MAX_DEPTH
    thresholds: List[int] = field(default_factory=list)


@dataclass
class CalibrateConfig:
    """Calibration parameters."""

    seed: int = DEFAULT_SEED
    # None: use the sample BED if given, otherwise the default fold coverage
    fold_coverage: Optional[float] = None
    flank: int = DEFAULT_FLANK
    min_mapq: int = DEFAULT_CALIBRATION_MIN_MAPQ
    write_index: bool = False
    exclude_uncalibrated_reads: bool = False
    cram: bool = False


@dataclass
class Config:
    """Main configuration class."""

    reference: Optional[Path] = None

    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)
    bedcov: BedcovConfig = field(default_factory=BedcovConfig)
    calibrate: CalibrateConfig = field(default_factory=CalibrateConfig)

    @property
    def threads(self) -> int:
        return self.performance.threads

    @threads.setter
    def threads(self, value: int):
        self.performance.threads = value

    def validate(self) -> None:
        """Validate configuration."""
        if self.performance.threads < 1:
            raise ConfigError("Threads must be >= 1")
        if self.runtime.log_level.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR"}:
            raise ConfigError(f"Unknown log level: {self.runtime.log_level}")

        for section in ("bedcov", "calibrate"):
            sub = getattr(self, section)
            if sub.flank < 0:
                raise ConfigError(f"{section}.flank must be >= 0")
            if not 0 <= sub.min_mapq <= 255:
                raise ConfigError(f"{section}.min_mapq must be between 0 and 255")

        if self.bedcov.max_depth < 0:
            raise ConfigError("bedcov.max_depth must be >= 0 (0 = unlimited)")
        if any(t < 0 for t in self.bedcov.thresholds):
            raise ConfigError("bedcov.thresholds must be >= 0")

        if self.calibrate.fold_coverage is not None and self.calibrate.fold_coverage < 0:
            raise ConfigError("calibrate.fold_coverage must be >= 0")
        if self.calibrate.seed < 0:
            raise ConfigError("calibrate.seed must be >= 0")
        if self.calibrate.cram and self.reference is None:
            raise ConfigError("CRAM output requires a reference FASTA")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""

        def path_to_str(obj):
            if isinstance(obj, Path):
                return str(obj)
            elif isinstance(obj, dict):
                return {k: path_to_str(v) for k, v in obj.items()}
            elif isinstance(obj, (list, tuple)):
                return [path_to_str(item) for item in obj]
            return obj

        return path_to_str(asdict(self))


SECTIONS = ("runtime", "performance", "bedcov", "calibrate")


def _apply_section(target: Any, section: str, values: Dict[str, Any]) -> None:
    known = {f.name for f in fields(target)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unsupported option(s) in '{section}': " + ", ".join(unknown))
    for key, value in values.items():
        if key == "log_file" and value:
            value = Path(value)
        setattr(target, key, value)


def load_config(path: Path) -> Config:
    """Load configuration from YAML file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    unknown = sorted(set(data) - set(SECTIONS) - {"reference", "threads"})
    if unknown:
        raise ConfigError("Unsupported config option(s): " + ", ".join(unknown))

    cfg = Config()
    if data.get("reference") is not None:
        cfg.reference = Path(data["reference"])
    if data.get("threads") is not None:
        cfg.performance.threads = data["threads"]

    for section in SECTIONS:
        values = data.get(section)
        if values is None:
            continue
        if not isinstance(values, dict):
            raise ConfigError(f"Config section '{section}' must be a mapping")
        _apply_section(getattr(cfg, section), section, values)

    return cfg


def save_config(cfg: Config, path: Path) -> None:
    """Save configuration to YAML file."""
    data = cfg.to_dict()
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
