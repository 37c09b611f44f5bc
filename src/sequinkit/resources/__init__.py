"""Resource files and configuration templates."""


def get_default_config() -> str:
    """Return default configuration YAML content."""
    return """# SequinKit Configuration File
# Command line options override the values below.

# Reference FASTA (needed for CRAM input or output)
reference: ~

# Runtime settings
runtime:
  log_level: "WARNING"
  log_file: ~
  enable_progress: false

# Performance settings
performance:
  threads: 1

# Coverage statistics (sequinkit bedcov)
bedcov:
  min_mapq: 0
  flank: 0
  # Per-base depth ceiling; 0 removes the limit
  max_depth: 8000
  thresholds: []

# Sequin calibration (sequinkit calibrate)
calibrate:
  seed: 5678
  # Fixed target depth; leave empty to use 40x, or the sample BED when given
  fold_coverage: ~
  flank: 0
  min_mapq: 10
  write_index: false
  exclude_uncalibrated_reads: false
  cram: false
"""
