"""Command modules: input validation followed by execution."""

from sequinkit.modules.base import ModuleBase, ModuleResult
from sequinkit.modules.bedcov import Bedcov
from sequinkit.modules.calibrate import Calibrator

__all__ = ["ModuleBase", "ModuleResult", "Bedcov", "Calibrator"]
