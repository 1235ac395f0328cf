"""Exception types raised by the import pipeline."""

from typing import Optional


class LegacyBridgeError(Exception):
    """Base exception for import pipeline errors."""
    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ConfigurationError(LegacyBridgeError):
    """Raised when a job or source system configuration is invalid."""
    pass


class ExtractionError(LegacyBridgeError):
    """Raised when a legacy source cannot be reached or read."""
    pass


class EmptySourceError(ExtractionError):
    """Raised when a legacy source yields no rows."""
    pass


class TransformationError(LegacyBridgeError):
    """Raised when a single value cannot be transformed."""
    pass


class WriteError(LegacyBridgeError):
    """Raised when a canonical entity cannot be written."""
    pass


class LedgerError(LegacyBridgeError):
    """Raised when a ledger entry cannot be written."""
    pass


class JobNotFoundError(LegacyBridgeError):
    """Raised when a job does not exist for the tenant."""
    pass


class JobStateError(LegacyBridgeError):
    """Raised when a job is not in a state that allows the operation."""
    pass


class ImportCancelledError(LegacyBridgeError):
    """Raised when a running job is cancelled."""
    pass


class PhaseTimeoutError(LegacyBridgeError):
    """Raised when a pipeline phase exceeds its time limit."""
    pass


class ImportJobError(LegacyBridgeError):
    """Raised after a job has been marked failed."""
    def __init__(self, job_id: str, message: str, original_error: Optional[Exception] = None):
        super().__init__(message, original_error)
        self.job_id = job_id


class CounterInvariantError(LegacyBridgeError):
    """Raised when job counters would be persisted out of balance."""
    pass
