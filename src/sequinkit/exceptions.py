"""Custom exceptions for SequinKit."""


class SequinKitError(Exception):
    """Base exception for all SequinKit errors."""

    pass


class ConfigError(SequinKitError):
    """Raised when inputs or options form an invalid combination."""

    pass


class AlignmentIOError(SequinKitError):
    """Raised when reading or writing an alignment container fails."""

    def __init__(self, message="", path=None):
        """Initialize AlignmentIOError with the offending file.

        Args:
            message: Error message
            path: Alignment file involved in the failure
        """
        super().__init__(message)
        self.path = path


class DataError(SequinKitError):
    """Raised when an interval or read stream violates an invariant."""

    pass
