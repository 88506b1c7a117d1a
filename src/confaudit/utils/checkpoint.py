"""Audit checkpoint management."""

from __future__ import annotations

import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path

from confaudit.errors import CheckpointError
from confaudit.utils.temporal import format_git_date, months_before, parse_git_date

logger = logging.getLogger(__name__)

FIRST_RUN_LOOKBACK_MONTHS = 6


class CheckpointStore:
    """Single-line checkpoint file holding the start time of the last good run."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self, now: datetime) -> datetime:
        """Load the last checkpoint, or ``now`` minus six months on first run."""
        if not self.path.exists():
            default = months_before(now, FIRST_RUN_LOOKBACK_MONTHS)
            logger.info("No checkpoint at %s, auditing since %s", self.path, default)
            return default

        try:
            text = self.path.read_text()
        except OSError as exc:
            raise CheckpointError(f"cannot read checkpoint {self.path}: {exc}") from exc

        try:
            checkpoint = parse_git_date(text.rstrip("\n"))
        except ValueError as exc:
            raise CheckpointError(
                f"checkpoint {self.path} is corrupt: {text.strip()!r}"
            ) from exc

        logger.info("Loaded checkpoint %s", checkpoint)
        return checkpoint

    def save(self, moment: datetime) -> None:
        """Replace the checkpoint atomically with ``moment``."""
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=directory, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(format_git_date(moment))
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise CheckpointError(f"cannot write checkpoint {self.path}: {exc}") from exc

        logger.info("Saved checkpoint %s", moment)
