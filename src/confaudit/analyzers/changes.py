"""Incremental change detection for configuration files.

For every file at the head of the default branch whose path contains the
pattern, walk that file's commit history and keep the latest author time
strictly after the checkpoint. A commit authored exactly at the checkpoint is
never reported: it predates the run that wrote the checkpoint, and the next
run excludes it too.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Protocol

from confaudit.errors import FileHistoryUnavailable, GitError, HistoryUnavailable
from confaudit.models import CommitRecord

logger = logging.getLogger(__name__)


class Snapshot(Protocol):
    """Queryable commit history of one repository."""

    def resolve_head(self) -> str: ...

    def resolve_commit(self, ref: str) -> str: ...

    def resolve_tree(self, commit: str) -> str: ...

    def list_files(self, tree: str) -> list[str]: ...

    def file_history(self, path: str, start: str) -> Iterable[CommitRecord]: ...


def matches_pattern(path: str, pattern: str) -> bool:
    """Plain case-sensitive substring match, no glob or regex."""
    return pattern in path


def _aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def latest_qualifying_time(
    commits: Iterable[CommitRecord], checkpoint: datetime
) -> datetime | None:
    """Max author time over commits strictly after the checkpoint, or None."""
    checkpoint = _aware(checkpoint)
    latest: datetime | None = None
    for commit in commits:
        when = _aware(commit.author_date)
        if when > checkpoint and (latest is None or when > latest):
            latest = when
    return latest


def detect_changes(
    snapshot: Snapshot, pattern: str, checkpoint: datetime
) -> dict[str, datetime]:
    """Map each matching file to its latest author time after ``checkpoint``.

    Files with no qualifying commit are left out. The mapping iterates in path
    order.

    Raises:
        HistoryUnavailable: head, commit or tree could not be resolved.
        FileHistoryUnavailable: the log of a matching file could not be read.
    """
    try:
        head = snapshot.resolve_head()
        commit = snapshot.resolve_commit(head)
        tree = snapshot.resolve_tree(commit)
        paths = snapshot.list_files(tree)
    except GitError as exc:
        raise HistoryUnavailable(str(exc)) from exc

    tracked = sorted(p for p in paths if matches_pattern(p, pattern))
    logger.debug("%d of %d files match %r", len(tracked), len(paths), pattern)

    result: dict[str, datetime] = {}
    for path in tracked:
        try:
            latest = latest_qualifying_time(snapshot.file_history(path, commit), checkpoint)
        except GitError as exc:
            raise FileHistoryUnavailable(path, str(exc)) from exc
        if latest is not None:
            result[path] = latest

    return result
