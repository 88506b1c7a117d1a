"""Local git clones and per-file history via the git CLI."""

from __future__ import annotations

import logging
import os
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Iterator
from urllib.parse import quote, urlsplit, urlunsplit

from confaudit.errors import CloneError, GitError
from confaudit.models import CommitRecord

logger = logging.getLogger(__name__)

COMMIT_SEP = "\x1e"  # record separator (ASCII RS)
FIELD_SEP = "\x1f"  # field separator (ASCII US)

GIT_LOG_FORMAT = "%x1f".join(
    [
        "%H",  # hash
        "%an",  # author name
        "%ae",  # author email
        "%aI",  # author date ISO
        "%cI",  # committer date ISO
    ]
) + "%x1e"

# Fail instead of blocking on an interactive credential prompt.
_GIT_ENV = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}


def _parse_commit_record(raw: str) -> CommitRecord | None:
    """Parse one formatted log record into a CommitRecord."""
    parts = raw.strip().split(FIELD_SEP)
    if len(parts) != 5:
        return None
    hash_, author_name, author_email, author_date, committer_date = parts
    return CommitRecord(
        hash=hash_,
        author_name=author_name,
        author_email=author_email,
        author_date=datetime.fromisoformat(author_date),
        committer_date=datetime.fromisoformat(committer_date),
    )


def _authenticated_url(url: str, username: str, password: str) -> str:
    """Embed basic credentials into an HTTP(S) clone URL; other URLs pass through."""
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not username:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    userinfo = f"{quote(username, safe='')}:{quote(password, safe='')}"
    return urlunsplit(parts._replace(netloc=f"{userinfo}@{host}"))


def _mask(text: str, secret: str) -> str:
    """Hide a secret (raw or URL-quoted) in git output that may echo the URL."""
    if not secret:
        return text
    return text.replace(quote(secret, safe=""), "***").replace(secret, "***")


def _parse_ls_tree_entry(entry: str) -> tuple[str, str] | None:
    """Parse '<mode> <type> <object>\t<path>' into (type, path)."""
    meta, sep, path = entry.partition("\t")
    fields = meta.split()
    if not sep or len(fields) != 3 or not path:
        return None
    return fields[1], path


class GitSnapshot:
    """Read-only view of a cloned repository's history at its default branch."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _git(self, *args: str) -> str:
        result = subprocess.run(
            ["git", "-C", str(self.path), *args],
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            env=_GIT_ENV,
        )
        if result.returncode != 0:
            raise GitError(f"git {args[0]} failed: {result.stderr.strip()}")
        return result.stdout

    def resolve_head(self) -> str:
        """Hash the HEAD reference points at."""
        return self._git("rev-parse", "--verify", "HEAD").strip()

    def resolve_commit(self, ref: str) -> str:
        return self._git("rev-parse", "--verify", f"{ref}^{{commit}}").strip()

    def resolve_tree(self, commit: str) -> str:
        return self._git("rev-parse", "--verify", f"{commit}^{{tree}}").strip()

    def list_files(self, tree: str) -> list[str]:
        """All blob paths in a tree, recursively. Submodule entries are skipped."""
        out = self._git("ls-tree", "-r", "-z", tree)
        paths = []
        for entry in out.split("\0"):
            parsed = _parse_ls_tree_entry(entry)
            if parsed and parsed[0] == "blob":
                paths.append(parsed[1])
        return paths

    def file_history(self, path: str, start: str) -> Iterator[CommitRecord]:
        """Stream commits reachable from ``start`` that touched ``path``.

        Commits come newest first by committer time.

        Raises:
            GitError: if git log exits non-zero.
        """
        cmd = [
            "git",
            # paths are file names, not glob patterns
            "--literal-pathspecs",
            "-C",
            str(self.path),
            "log",
            "--date-order",
            f"--pretty=format:{GIT_LOG_FORMAT}",
            start,
            "--",
            path,
        ]
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
            env=_GIT_ENV,
        )
        assert proc.stdout is not None
        assert proc.stderr is not None

        buffer = ""
        for chunk in iter(lambda: proc.stdout.read(8192), ""):
            buffer += chunk
            while COMMIT_SEP in buffer:
                raw, buffer = buffer.split(COMMIT_SEP, 1)
                if not raw.strip():
                    continue
                record = _parse_commit_record(raw)
                if record:
                    yield record

        proc.wait()
        if proc.returncode != 0:
            stderr = proc.stderr.read()
            raise GitError(f"git log failed: {stderr.strip()}")


def clone_repository(url: str, dest: Path, username: str, password: str) -> GitSnapshot:
    """Clone ``url`` into ``dest`` and return a snapshot of it.

    Raises:
        CloneError: if git clone fails or git is not installed.
    """
    logger.info("Cloning %s into %s", url, dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    cmd = ["git", "clone", "--quiet", _authenticated_url(url, username, password), str(dest)]
    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, errors="replace", env=_GIT_ENV
        )
    except FileNotFoundError as exc:
        raise CloneError("git executable not found") from exc

    if result.returncode != 0:
        raise CloneError(f"cloning {url} failed: {_mask(result.stderr, password).strip()}")
    return GitSnapshot(dest)
