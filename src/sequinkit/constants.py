"""Unified constants for SequinKit.

Defaults shared by the coverage and calibration commands live here so the
CLI, the YAML template and the config dataclasses agree.
"""

# ================== Read Selection ==================
# SAM flag bits used by the counting policy
FLAG_PAIRED: int = 0x1
FLAG_UNMAPPED: int = 0x4
FLAG_SECONDARY: int = 0x100
FLAG_QCFAIL: int = 0x200
FLAG_DUPLICATE: int = 0x400
FLAG_SUPPLEMENTARY: int = 0x800

# UNMAP,SECONDARY,QCFAIL,DUP,SUPPLEMENTARY
DEFAULT_EXCLUDE_FLAGS: int = 0xF04


# ================== Coverage ==================
# Per-base depth ceiling for bedcov; 0 disables the cap
DEFAULT_MAX_DEPTH: int = 8000

# Bases trimmed from each end of a region before measuring depth
DEFAULT_FLANK: int = 0


# ================== Calibration ==================
DEFAULT_SEED: int = 5678

# Target fold coverage when no sample BED is given
DEFAULT_FOLD_COVERAGE: float = 40.0

# Minimum MAPQ for reads counted during calibration
DEFAULT_CALIBRATION_MIN_MAPQ: int = 10


# ================== Output Constants ==================
OUTPUT_DECIMAL_PRECISION: int = 2
