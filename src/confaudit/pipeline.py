"""Audit run orchestration: one pass over every repository of the account."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable

from confaudit.analyzers.changes import Snapshot, detect_changes
from confaudit.config import ConfauditConfig
from confaudit.errors import ReportError
from confaudit.formatters.report import ReportBuilder, report_path
from confaudit.models import AuditResult, RepositoryRef, RepositoryResult
from confaudit.utils.checkpoint import CheckpointStore

logger = logging.getLogger(__name__)

RepositoryLister = Callable[[ConfauditConfig], list[RepositoryRef]]
RepositoryMaterializer = Callable[[RepositoryRef, Path, ConfauditConfig], Snapshot]


@dataclass
class RunContext:
    """State owned by a single audit run."""

    started_at: datetime
    checkpoint: datetime
    report: ReportBuilder = field(default_factory=ReportBuilder)
    clone_paths: list[Path] = field(default_factory=list)
    results: list[RepositoryResult] = field(default_factory=list)

    def cleanup(self) -> None:
        """Remove every local clone of this run. Failures are only logged."""
        while self.clone_paths:
            path = self.clone_paths.pop()
            shutil.rmtree(path, onexc=_log_cleanup_failure)


def _log_cleanup_failure(function, path, exc) -> None:
    logger.warning("Could not remove %s: %s", path, exc)


def list_bitbucket_repositories(config: ConfauditConfig) -> list[RepositoryRef]:
    """Default lister: the owner's repositories on Bitbucket Cloud."""
    import asyncio

    from confaudit.extractors.bitbucket import fetch_repositories

    return asyncio.run(
        fetch_repositories(
            config.bitbucket.username,
            config.bitbucket.resolve_password(),
            config.bitbucket.owner,
        )
    )


def clone_with_git(repo: RepositoryRef, dest: Path, config: ConfauditConfig) -> Snapshot:
    """Default materializer: a full ``git clone`` over HTTPS."""
    from confaudit.extractors.git_log import clone_repository

    return clone_repository(
        repo.clone_url,
        dest,
        config.bitbucket.username,
        config.bitbucket.resolve_password(),
    )


def run_audit(
    config: ConfauditConfig,
    *,
    now: datetime | None = None,
    lister: RepositoryLister | None = None,
    materializer: RepositoryMaterializer | None = None,
) -> AuditResult:
    """Run one audit cycle.

    The first failure aborts the run. Blocks for repositories scanned before
    the failure are still written to the report, but the checkpoint only
    advances when every repository was scanned.
    """
    lister = lister or list_bitbucket_repositories
    materializer = materializer or clone_with_git
    started_at = now or datetime.now().astimezone()

    store = CheckpointStore(config.checkpoint_path)
    ctx = RunContext(started_at=started_at, checkpoint=store.load(started_at))
    out_path = report_path(config.result_path, started_at)

    try:
        repositories = sorted(lister(config), key=lambda r: r.name)
        logger.info(
            "Auditing %d repositories for files matching %r since %s",
            len(repositories), config.audit.pattern, ctx.checkpoint,
        )
        for repo in repositories:
            _scan_repository(ctx, repo, config, materializer)
    except BaseException:
        if not ctx.report.is_empty:
            try:
                ctx.report.flush(out_path)
            except ReportError:
                logger.exception("Could not save partial report")
        raise
    finally:
        ctx.cleanup()

    ctx.report.flush(out_path)
    store.save(started_at)

    return AuditResult(
        started_at=started_at,
        checkpoint=ctx.checkpoint,
        report_path=out_path,
        results=ctx.results,
    )


def _scan_repository(
    ctx: RunContext,
    repo: RepositoryRef,
    config: ConfauditConfig,
    materializer: RepositoryMaterializer,
) -> None:
    dest = config.clone_path / repo.name
    logger.info("local path: %s, url: %s", dest, repo.clone_url)

    snapshot = materializer(repo, dest, config)
    ctx.clone_paths.append(dest)

    changes = detect_changes(snapshot, config.audit.pattern, ctx.checkpoint)
    logger.info("%s: %d changed files", repo.name, len(changes))

    ctx.results.append(RepositoryResult.from_mapping(repo, changes))
    ctx.report.add_repository_result(repo.name, changes)
