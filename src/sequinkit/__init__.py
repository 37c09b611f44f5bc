"""SequinKit: coverage statistics and sequin calibration for NGS alignments."""

from sequinkit.__version__ import __version__

__all__ = ["__version__"]
