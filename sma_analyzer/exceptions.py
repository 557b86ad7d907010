"""
Error Types for the SMA Signal Analyzer

Every failure the analyzer can report is one of the exceptions below. All of
them are terminal for a run: the input is static, so nothing is retried and
nothing is recovered silently. The command line runner maps each type to a
distinct exit code through the ``exit_code`` class attribute.

    AnalyzerError
    ├── InputFileNotFoundError   (also FileNotFoundError)
    ├── CsvParseError
    │   ├── MalformedTimestampError
    │   └── NonNumericPriceError
    ├── InsufficientDataError
    └── ConfigurationError       (also ValueError)

Version: 1.0.0
"""

from __future__ import annotations

from typing import Optional


class AnalyzerError(Exception):
    """Base class for all analyzer failures."""
    exit_code: int = 1


class InputFileNotFoundError(AnalyzerError, FileNotFoundError):
    """The CSV input path does not exist or is not a file."""
    exit_code = 3

    def __init__(self, path: str, exists: bool = False):
        self.path = str(path)
        if exists:
            super().__init__(f"Input path is not a file: {self.path}")
        else:
            super().__init__(f"Input file not found: {self.path}")


class CsvParseError(AnalyzerError):
    """
    The CSV input could not be turned into an ordered sample sequence.

    Parameters
    ----------
    row : Optional[int]
        1-based data row number (header excluded, blank lines counted, so
        row N is file line N + 1); 0 for header problems, None when the
        parser cannot attribute the failure to a row
    reason : str
        What was wrong with the row
    """
    exit_code = 4

    def __init__(self, row: Optional[int], reason: str):
        self.row = row
        self.reason = reason
        location = f"row {row}" if row is not None else "input"
        super().__init__(f"CSV parse error at {location}: {reason}")


class MalformedTimestampError(CsvParseError):
    """A timestamp field is not valid ISO-8601."""
    exit_code = 5

    def __init__(self, row: int, value: str):
        self.value = value
        super().__init__(row, f"malformed timestamp {value!r}")


class NonNumericPriceError(CsvParseError):
    """A price field is empty, non-numeric or not finite."""
    exit_code = 6

    def __init__(self, row: int, value: str):
        self.value = value
        super().__init__(row, f"non-numeric price {value!r}")


class InsufficientDataError(AnalyzerError):
    """Fewer samples than the computation requires."""
    exit_code = 7

    def __init__(self, required: int, found: int):
        self.required = required
        self.found = found
        super().__init__(
            f"Insufficient data: need at least {required} samples, got {found}"
        )


class ConfigurationError(AnalyzerError, ValueError):
    """Invalid analyzer parameters or configuration file."""
    exit_code = 2
