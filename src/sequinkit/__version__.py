"""Version information for SequinKit."""

__version__ = "0.5.4"
__author__ = "SequinKit developers"
__license__ = "Apache-2.0"
__description__ = "Coverage statistics and sequin calibration for NGS alignments with spiked-in sequins"
