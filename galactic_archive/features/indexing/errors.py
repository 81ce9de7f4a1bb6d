"""Errors raised and reported by the indexing pipeline."""


class GalacticArchiveError(Exception):
    """Base class for indexer errors."""


class ConfigurationError(GalacticArchiveError):
    """Root folder or store settings are missing or unusable. The run never starts."""


class StoreUnavailableError(GalacticArchiveError):
    """The index store could not be reached at startup."""


class PipelineCancelledError(GalacticArchiveError):
    """The run's stop event was set; work already admitted was allowed to drain."""


class TraversalError(GalacticArchiveError):
    """A directory could not be listed.

    Reported in the walk result; the walker continues with the remaining
    directories.
    """

    def __init__(self, path: str, stage: str, cause: BaseException):
        self.path = path
        self.stage = stage
        self.cause = cause
        super().__init__(f"Failed to list {stage} of '{path}': {cause}")


class ReconciliationError(GalacticArchiveError):
    """Reconciling one entry against the store failed.

    The record for ``path`` keeps whatever state it had before the attempt.
    """

    def __init__(self, path: str, message: str, cause: BaseException | None = None):
        self.path = path
        self.cause = cause
        super().__init__(f"{message} (path='{path}')")
