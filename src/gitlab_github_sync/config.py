"""
Run configuration and input file parsing.
"""

from __future__ import annotations

import csv
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .exceptions import MigrationError

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_GITLAB_URL: Final[str] = "https://gitlab.com"
DEFAULT_MERGE_REQUEST_DELAY: Final[float] = 1.0

_GITLAB_URL_ENV_VAR: Final[str] = "GITLAB_URL"
_GITLAB_TOKEN_ENV_VAR: Final[str] = "GITLAB_TOKEN"  # noqa: S105
_GITHUB_TOKEN_ENV_VAR: Final[str] = "GITHUB_TOKEN"  # noqa: S105
_GITHUB_OWNER_ENV_VAR: Final[str] = "GITHUB_OWNER"


@dataclass
class SyncConfig:
    """Settings shared by every repository of a run."""

    gitlab_url: str
    gitlab_token: str | None
    github_token: str
    github_owner: str | None = None
    work_dir: str | None = None
    merge_request_delay: float = DEFAULT_MERGE_REQUEST_DELAY
    migrate_secrets: bool = True
    migrate_merge_requests: bool = True

    @property
    def base_work_dir(self) -> Path:
        return Path(self.work_dir) if self.work_dir else Path(tempfile.gettempdir())

    @classmethod
    def from_env(
        cls,
        *,
        gitlab_url: str | None = None,
        github_owner: str | None = None,
        work_dir: str | None = None,
        merge_request_delay: float = DEFAULT_MERGE_REQUEST_DELAY,
        migrate_secrets: bool = True,
        migrate_merge_requests: bool = True,
    ) -> SyncConfig:
        """Build the configuration from explicit values, falling back to environment variables."""
        github_token = os.environ.get(_GITHUB_TOKEN_ENV_VAR)
        if not github_token:
            msg = f"GitHub token required: set {_GITHUB_TOKEN_ENV_VAR}"
            raise MigrationError(msg)

        gitlab_token = os.environ.get(_GITLAB_TOKEN_ENV_VAR)
        if not gitlab_token:
            logger.warning(f"{_GITLAB_TOKEN_ENV_VAR} not set, using anonymous GitLab access")

        return cls(
            gitlab_url=gitlab_url or os.environ.get(_GITLAB_URL_ENV_VAR) or DEFAULT_GITLAB_URL,
            gitlab_token=gitlab_token,
            github_token=github_token,
            github_owner=github_owner or os.environ.get(_GITHUB_OWNER_ENV_VAR) or None,
            work_dir=work_dir,
            merge_request_delay=merge_request_delay,
            migrate_secrets=migrate_secrets,
            migrate_merge_requests=migrate_merge_requests,
        )


def parse_repository_list(lines: list[str]) -> list[str]:
    """Return source repository URLs in input order, skipping blank and comment lines."""
    urls: list[str] = []
    for raw_line in lines:
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        urls.append(line)
    return urls


def load_repository_list(path: str | Path) -> list[str]:
    """Read the ordered list of source repository URLs."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        msg = f"Cannot read repository list {path}: {e}"
        raise MigrationError(msg) from e
    return parse_repository_list(text.splitlines())


def load_name_overrides(path: str | Path | None) -> dict[str, str]:
    """Read the optional source URL -> destination name table (two comma-separated columns)."""
    if path is None:
        return {}

    overrides: dict[str, str] = {}
    try:
        with Path(path).open(encoding="utf-8", newline="") as f:
            for row in csv.reader(f):
                if not row or not row[0].strip() or row[0].strip().startswith("#"):
                    continue
                if len(row) < 2 or not row[1].strip():
                    logger.warning(f"Ignoring malformed override line in {path}: {','.join(row)}")
                    continue
                overrides[row[0].strip()] = row[1].strip()
    except OSError as e:
        msg = f"Cannot read name override file {path}: {e}"
        raise MigrationError(msg) from e

    return overrides
