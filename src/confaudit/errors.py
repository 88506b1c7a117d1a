"""Exception hierarchy. Every failure here is fatal to the audit run."""

from __future__ import annotations


class AuditError(RuntimeError):
    """Base class for all confaudit failures."""


class ConfigError(AuditError):
    """Configuration file missing, unreadable or incomplete."""


class ListingError(AuditError):
    """The account repository listing could not be fetched."""


class CloneError(AuditError):
    """A repository could not be cloned to local disk."""


class GitError(AuditError):
    """A git command against a local clone failed."""


class HistoryUnavailable(AuditError):
    """Head reference, commit or tree of a repository could not be resolved."""


class FileHistoryUnavailable(AuditError):
    """The commit log of a single file could not be read."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"history of {path} unavailable: {message}")
        self.path = path


class CheckpointError(AuditError):
    """Checkpoint file is corrupt or cannot be written."""


class ReportError(AuditError):
    """The change report could not be written."""
