"""Exception hierarchy for the PCI repository pipeline."""

from __future__ import annotations


class RepositoryError(Exception):
    """Base class for every error raised by the ingestion pipeline."""


class FetchError(RepositoryError):
    """The registry text could not be retrieved from its source."""

    def __init__(
        self, location: str, cause: Exception | str, status_code: int | None = None
    ) -> None:
        self.location = location
        self.status_code = status_code
        super().__init__(f"Failed to fetch {location}: {cause}")
        if isinstance(cause, Exception):
            self.__cause__ = cause


class FormatError(RepositoryError):
    """The registry text does not follow the expected format."""


class VersionFormatError(FormatError):
    """The version marker line is missing, misplaced or unparseable."""

    def __init__(self, message: str, line: str | None = None) -> None:
        self.line = line
        super().__init__(message)


class GrammarViolation(FormatError):
    """A registry line failed fixed-column or structural validation."""

    def __init__(self, line_no: int, line: str, reason: str) -> None:
        self.line_no = line_no
        self.line = line
        self.reason = reason
        super().__init__(f"line {line_no}: {reason}: {line!r}")


class PersistenceError(RepositoryError):
    """A store read or write failed."""

    def __init__(self, operation: str, cause: Exception) -> None:
        self.operation = operation
        super().__init__(f"store {operation} failed: {cause}")
        self.__cause__ = cause


class RunInProgressError(RepositoryError):
    """Another run already holds the store's run lock."""

    def __init__(self, holder: str, acquired_at: str) -> None:
        self.holder = holder
        self.acquired_at = acquired_at
        super().__init__(f"Run already in progress (held by {holder} since {acquired_at})")
