"""
etl/errors.py – Failure kinds raised by the extract and load layers.

    InvalidResponseError  upstream answered with something that is not JSON
                          (typically an HTML block page); aborts the run.
    HistoryNotFoundError  the requested file does not exist yet.
    HistoryConflictError  the file changed since it was read (stale revision).
    StoreError            any other storage transport failure.
"""


class RateHistoryError(Exception):
    """Base class for errors raised by this package."""


class InvalidResponseError(RateHistoryError):
    """Raised when the rates endpoint does not return a JSON document."""


class StoreError(RateHistoryError):
    """Raised when a history store cannot complete a read or write."""


class HistoryNotFoundError(StoreError):
    """Raised by HistoryStore.load when the path does not exist."""


class HistoryConflictError(StoreError):
    """Raised by HistoryStore.save when the revision token is stale."""
