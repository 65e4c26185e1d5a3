"""
Mirroring Error Taxonomy.

Every failure raised by the hosting client or the mirroring stages is one of
the exceptions below, so callers can decide between recovering locally
(not-found gaps, validation short-circuits) and aborting the run.
"""


class MirrorCollapseError(Exception):
    """Base class for all mirroring errors."""


class ConfigurationError(MirrorCollapseError):
    """Settings are missing or malformed. Raised before any remote call."""


class NotFoundError(MirrorCollapseError):
    """A remote object (repository, branch, file, commit, ref, PR) does not exist."""


class ValidationError(MirrorCollapseError):
    """The hosting service rejected a request as invalid (HTTP 422)."""


class TransportError(MirrorCollapseError):
    """Any other remote failure. Aborts the current pass."""


class LedgerError(MirrorCollapseError):
    """The persisted mirror ledger could not be read or is corrupted."""
