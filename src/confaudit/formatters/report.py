"""Plain-text change report, one file per audit day."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from confaudit.errors import ReportError
from confaudit.utils.temporal import format_git_date

logger = logging.getLogger(__name__)


def report_path(result_dir: Path, started_at: datetime) -> Path:
    """Report location for a run: ``<result_dir>/YYYY-MM-DD.txt``."""
    return result_dir / f"{started_at:%Y-%m-%d}.txt"


def format_change_line(path: str, repository: str, changed_at: datetime) -> str:
    return (
        f"{path} in repository({repository}) has changed in latest "
        f"time({format_git_date(changed_at)})"
    )


class ReportBuilder:
    """Accumulates per-repository blocks of change lines."""

    def __init__(self) -> None:
        self._lines: list[str] = []

    def add_repository_result(self, repository: str, changes: dict[str, datetime]) -> None:
        """Append one block for ``repository``; empty mappings add nothing."""
        if not changes:
            return
        for path in sorted(changes):
            self._lines.append(format_change_line(path, repository, changes[path]))
        self._lines.append("")

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def render(self) -> str:
        return "".join(f"{line}\n" for line in self._lines)

    def flush(self, path: Path) -> Path:
        """Write the report to ``path``, replacing any earlier run of the day."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(self.render())
        except OSError as exc:
            raise ReportError(f"cannot write report {path}: {exc}") from exc
        logger.info("Wrote report %s", path)
        return path
