"""
Exception hierarchy for the persona memory engine.

Infrastructure faults (StoreUnavailableError) propagate to callers.
Data-quality faults (InvalidMemoryError) are raised for single records and
absorbed by batch operations such as import.
"""


class MemoryEngineError(Exception):
    """Base class for memory engine errors."""
    pass


class StoreUnavailableError(MemoryEngineError):
    """The memory database is missing, closed, or cannot be opened."""
    pass


class InvalidMemoryError(MemoryEngineError, ValueError):
    """A memory record is malformed or conflicts with an existing record."""
    pass
