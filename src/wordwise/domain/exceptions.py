"""
Error taxonomy for the review engine.

Pure scheduling functions never raise these; only the orchestration layer
and the persistence adapters do.
"""


class WordwiseError(Exception):
    """Base class for every error the engine surfaces."""


class NotAuthenticated(WordwiseError):
    """No valid user context accompanied the request."""


class ValidationError(WordwiseError):
    """Malformed input rejected at the engine boundary."""


class ConfigurationError(WordwiseError):
    """The state-threshold table could not be read or parsed."""


class TransientStoreError(WordwiseError):
    """
    A persistence failure worth retrying (lost connection, lock timeout).

    Adapters raise this; the retry policy consumes it.
    """


class PersistenceError(WordwiseError):
    """A load or upsert failed, after retries where applicable."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause
