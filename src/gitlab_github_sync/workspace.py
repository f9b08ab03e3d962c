"""Disposable per-repository working directories."""

from __future__ import annotations

import logging
import re
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .git_utils import GitRunner

logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Workspace:
    """Local clones belonging to exactly one repository sync."""

    root: Path

    @property
    def mirror_path(self) -> Path:
        return self.root / "mirror.git"

    @property
    def working_path(self) -> Path:
        return self.root / "working"

    def ensure_working_clone(self, git: GitRunner, source_url: str, destination_url: str) -> Path:
        """Create the working clone on first use and return its path."""
        path = self.working_path
        if not (path / ".git").exists():
            git.init_working_clone(path, source_url, destination_url)
        return path


@contextmanager
def repository_workspace(base_dir: Path, name: str) -> Iterator[Workspace]:
    """Allocate an exclusive workspace under base_dir and remove it on every exit path."""
    base_dir.mkdir(parents=True, exist_ok=True)
    prefix = re.sub(r"[^A-Za-z0-9._-]+", "-", name) or "repo"
    root = Path(tempfile.mkdtemp(prefix=f"gitlab_sync_{prefix}_", dir=base_dir))
    logger.debug(f"Allocated workspace {root}")
    try:
        yield Workspace(root=root)
    finally:
        shutil.rmtree(root, ignore_errors=True)
        logger.debug(f"Released workspace {root}")
