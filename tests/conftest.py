"""Shared fixtures for confaudit tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from confaudit.config import AuditConfig, BitbucketConfig, ConfauditConfig
from confaudit.errors import GitError
from confaudit.models import CommitRecord

NOW = datetime(2026, 3, 15, 9, 30, 0, tzinfo=timezone.utc)


def _make_commit(when: datetime, hash_: str = "abc1234", author: str = "Alice") -> CommitRecord:
    return CommitRecord(
        hash=hash_,
        author_name=author,
        author_email=f"{author.lower()}@test.com",
        author_date=when,
        committer_date=when,
    )


class FakeSnapshot:
    """In-memory snapshot: a head tree plus per-file commit lists."""

    def __init__(
        self,
        histories: dict[str, list[CommitRecord]],
        *,
        broken_head: bool = False,
        broken_paths: tuple[str, ...] = (),
    ) -> None:
        self.histories = histories
        self.broken_head = broken_head
        self.broken_paths = broken_paths
        self.history_calls: list[str] = []

    def resolve_head(self) -> str:
        if self.broken_head:
            raise GitError("git rev-parse failed: fatal: ambiguous argument 'HEAD'")
        return "c0ffee"

    def resolve_commit(self, ref: str) -> str:
        return ref

    def resolve_tree(self, commit: str) -> str:
        return f"tree-{commit}"

    def list_files(self, tree: str) -> list[str]:
        return list(self.histories)

    def file_history(self, path: str, start: str):
        self.history_calls.append(path)
        if path in self.broken_paths:
            raise GitError("git log failed: fatal: bad object")
        yield from self.histories[path]


@pytest.fixture
def make_commit():
    """Factory for CommitRecord with equal author and committer time."""
    return _make_commit


@pytest.fixture
def fake_snapshot():
    """The FakeSnapshot class, for building snapshots inline."""
    return FakeSnapshot


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def config(tmp_path) -> ConfauditConfig:
    return ConfauditConfig(
        bitbucket=BitbucketConfig(username="auditor", password="secret", owner="acme"),
        audit=AuditConfig(clone_dir="repos", pattern="conf"),
        base_dir=tmp_path,
    )


@pytest.fixture
def days():
    """Offset helper: days(-2) is two days before NOW."""

    def _days(n: float) -> datetime:
        return NOW + timedelta(days=n)

    return _days
