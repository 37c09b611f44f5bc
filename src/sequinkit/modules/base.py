"""
Base module interface for SequinKit commands.

Each command (bedcov, calibrate) is a module with an input validation phase
that runs before any alignment is read, and an execution phase.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from sequinkit.exceptions import ConfigError
from sequinkit.utils.logging import LogTemplates, get_logger


@dataclass
class ModuleResult:
    """Standard result container for all modules."""

    success: bool
    module_name: str
    output_files: dict[str, Path] = field(default_factory=dict)
    metrics: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    execution_time: float = 0.0

    def add_output(self, key: str, path: Union[str, Path]) -> None:
        """Add an output file to the result."""
        self.output_files[key] = Path(path)

    def add_metric(self, key: str, value: Any) -> None:
        """Add a metric to the result."""
        self.metrics[key] = value

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)


class ModuleBase(ABC):
    """Base class for SequinKit command modules."""

    description: str = ""

    def __init__(
        self,
        name: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the module.

        Args:
            name: Module name (defaults to class name)
            logger: Logger instance (creates new if None)
        """
        self.name = name or self.__class__.__name__
        self.logger = logger or get_logger(self.name)
        self._start_time: Optional[float] = None

    def validate_input_file(self, file_path: Union[str, Path], file_type: str = "input") -> Path:
        """
        Validate that an input file exists and is a regular file.

        Raises:
            ConfigError: If file doesn't exist
        """
        path = Path(file_path)
        if not path.exists():
            raise ConfigError(f"{file_type} file not found: {path}")
        if not path.is_file():
            raise ConfigError(f"{file_type} path is not a file: {path}")
        return path

    @abstractmethod
    def validate_inputs(self) -> None:
        """
        Check every option combination before heavy work starts.

        Raises:
            ConfigError: If the combination is invalid
        """

    @abstractmethod
    def execute(self) -> ModuleResult:
        """Execute the module's main logic."""

    def run(self) -> ModuleResult:
        """
        Main entry point for running the module.

        Validation and execution errors propagate to the caller; a run either
        completes or raises.
        """
        self._start_time = time.time()
        self.logger.info(
            LogTemplates.COMMAND_START.format(command=self.name, description=self.description)
        )
        self.validate_inputs()

        result = self.execute()
        result.module_name = self.name
        result.execution_time = time.time() - self._start_time

        for warning in result.warnings:
            self.logger.warning(warning)
        self.logger.info(
            LogTemplates.COMMAND_SUCCESS.format(command=self.name, duration=result.execution_time)
        )
        return result
