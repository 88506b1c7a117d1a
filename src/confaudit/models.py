"""All shared data models for confaudit."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

# ── Repository discovery ────────────────────────────────────────────────────


@dataclass(frozen=True)
class RepositoryRef:
    """A repository owned by the audited account."""

    name: str  # slug, also used as the local clone directory name
    clone_url: str


# ── Git history ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CommitRecord:
    """A commit as seen by the per-file history walk."""

    hash: str
    author_name: str
    author_email: str
    author_date: datetime
    committer_date: datetime


# ── Change detection ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ChangeEntry:
    """Latest qualifying change to one tracked file."""

    path: str
    changed_at: datetime


@dataclass
class RepositoryResult:
    """Change entries found in one repository, ordered by path."""

    repository: RepositoryRef
    changes: list[ChangeEntry] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)

    @classmethod
    def from_mapping(
        cls, repository: RepositoryRef, changes: dict[str, datetime]
    ) -> RepositoryResult:
        entries = [ChangeEntry(path, when) for path, when in sorted(changes.items())]
        return cls(repository=repository, changes=entries)


# ── Run aggregates ──────────────────────────────────────────────────────────


@dataclass
class AuditResult:
    """Outcome of one completed audit cycle."""

    started_at: datetime
    checkpoint: datetime
    report_path: Path
    results: list[RepositoryResult] = field(default_factory=list)

    @property
    def repositories_scanned(self) -> int:
        return len(self.results)

    @property
    def changed_repositories(self) -> list[RepositoryResult]:
        return [r for r in self.results if r.has_changes]

    @property
    def total_changes(self) -> int:
        return sum(len(r.changes) for r in self.results)
