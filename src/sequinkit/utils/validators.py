"""Validation utilities for SequinKit."""

from __future__ import annotations

import importlib
from typing import List


def validate_installation() -> List[str]:
    """
    Validate SequinKit installation and dependencies.

    Returns:
        List of validation issues (empty if all good)
    """
    issues = []

    # Distribution name -> import name
    required_modules = {
        "pysam": "pysam",
        "numpy": "numpy",
        "pandas": "pandas",
        "pyyaml": "yaml",
        "click": "click",
        "tqdm": "tqdm",
    }

    for dist, module in required_modules.items():
        try:
            importlib.import_module(module)
        except ImportError:
            issues.append(f"Missing Python module: {dist}")

    try:
        from sequinkit.core.calibration import calibrate_regions  # noqa: F401
        from sequinkit.core.coverage import coverage  # noqa: F401
        from sequinkit.io.alignment import PysamReadSource  # noqa: F401
    except ImportError as e:
        issues.append(f"SequinKit module import error: {e}")

    return issues
