# eob_retriever/core/errors.py
from typing import Optional


class EobRetrieverError(RuntimeError):
    """Base class for errors raised by the retrieval pipeline."""


class ConfigurationError(EobRetrieverError):
    """
    Raised when required settings are missing or malformed.
    """


class ClaimFormatError(EobRetrieverError, ValueError):
    """
    Raised when text read from the portal does not match the pattern we expect.
    """


class RecordCountFormatError(ClaimFormatError):
    pass


class ServiceDateFormatError(ClaimFormatError):
    pass


class DocumentLinkFormatError(ClaimFormatError):
    pass


class MissingColumnError(ClaimFormatError):
    def __init__(self, row_index: int, column: str):
        self.row_index = row_index
        self.column = column
        super().__init__(f"Row {row_index}: expected column '{column}' is missing.")


class RowCountConvergenceError(EobRetrieverError, TimeoutError):
    """
    Raised when the rendered row count never reaches the reported total.
    """

    def __init__(self, expected: int, last_seen: Optional[int], timeout_seconds: float):
        self.expected = expected
        self.last_seen = last_seen
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Rendered rows did not reach {expected} within {timeout_seconds}s (last seen: {last_seen})."
        )
