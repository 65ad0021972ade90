"""Exception hierarchy for the manifest automation.

Only PreconditionError (and its subclasses) is allowed to abort a run.
Lookup errors and vetoes are caught at the per-item boundary and turned
into outcomes.
"""


class ManifestError(Exception):
    """Base class for all errors raised by this package."""


class PreconditionError(ManifestError):
    """Required input is missing or malformed; the run must stop before any write."""


class ManifestStoreError(PreconditionError):
    """The manifest file could not be read, validated or written."""


class EntryLookupError(ManifestError):
    """The marketplace could not answer a lookup."""


class EntryNotFoundError(EntryLookupError):
    """The requested item, file list or game does not exist."""


class RateLimitedError(EntryLookupError):
    """The marketplace refused the request because a rate limit was hit."""


class TransientLookupError(EntryLookupError):
    """Network failure or unexpected response; may succeed on a later run."""


class RejectedError(ManifestError):
    """A business rule vetoed applying an update."""

    def __init__(self, reason: str = "Update rejected"):
        super().__init__(reason)
        self.reason = reason


class ReviewRequestError(ManifestError):
    """Review requests could not be read from the source-control host."""
