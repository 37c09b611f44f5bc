"""Tests for the exception hierarchy and exit codes."""

import pytest

from sequinkit.cli.exit_codes import (
    EXIT_ERROR,
    EXIT_SIGINT,
    EXIT_SIGTERM,
    EXIT_SUCCESS,
    EXIT_USAGE,
)
from sequinkit.exceptions import AlignmentIOError, ConfigError, DataError, SequinKitError


class TestExceptions:
    @pytest.mark.parametrize("exc_type", [ConfigError, AlignmentIOError, DataError])
    def test_single_base_class(self, exc_type):
        assert issubclass(exc_type, SequinKitError)
        with pytest.raises(SequinKitError):
            raise exc_type("boom")

    def test_alignment_error_keeps_path(self):
        err = AlignmentIOError("cannot open", path="in.bam")
        assert str(err) == "cannot open"
        assert err.path == "in.bam"

    def test_alignment_error_defaults(self):
        assert AlignmentIOError().path is None


class TestExitCodes:
    def test_values(self):
        assert EXIT_SUCCESS == 0
        assert EXIT_ERROR == 1
        assert EXIT_USAGE == 2
        assert EXIT_SIGINT == 128 + 2
        assert EXIT_SIGTERM == 128 + 15
