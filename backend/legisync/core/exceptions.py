"""
Exception taxonomy for the ingestion and enrichment pipeline.
"""


class LegiSyncError(Exception):
    """Base class for all pipeline errors."""
    pass


class ConfigurationMissing(LegiSyncError):
    """Raised at process start when required settings are absent."""
    pass


class TransientFailure(LegiSyncError):
    """Retryable upstream failure (non-2xx response, timeout, transport error)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FatalFailure(LegiSyncError):
    """Raised when a call exhausted its retry budget or cannot be retried."""

    def __init__(
        self,
        message: str,
        last_error: BaseException | None = None,
        attempts: int = 0,
    ):
        super().__init__(message)
        self.last_error = last_error
        self.attempts = attempts


class UpstreamUnavailable(FatalFailure):
    """Liveness probe failed; no retry budget was spent."""

    def __init__(self, message: str, last_error: BaseException | None = None):
        super().__init__(message, last_error=last_error, attempts=0)


class ValidationFailure(LegiSyncError):
    """A child record failed minimal shape validation and was dropped."""

    def __init__(self, message: str, collection: str = "unknown"):
        super().__init__(message)
        self.collection = collection


class LockContention(LegiSyncError):
    """A lease could not be acquired within its timeout."""

    def __init__(self, key: str):
        super().__init__(f"Resource is locked: {key}")
        self.key = key


class ShapeMismatch(LegiSyncError):
    """Generative model output did not match the required JSON shape."""
    pass


class BillNotFound(LegiSyncError):
    """No stored bill has the requested id."""

    def __init__(self, bill_id):
        super().__init__(f"Bill not found: {bill_id}")
        self.bill_id = bill_id
