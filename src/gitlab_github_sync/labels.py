"""
Label reconciliation from GitLab to GitHub.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from github import GithubException

from .exceptions import MigrationError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from github.Repository import Repository as GithubRepository

    from .models import Label

logger: logging.Logger = logging.getLogger(__name__)


def _is_already_exists_error(exc: GithubException) -> bool:
    """Check if a GithubException is a 422 'already_exists' validation error."""
    if exc.status != 422 or not isinstance(exc.data, dict):
        return False
    errors: object = exc.data.get("errors")  # pyright: ignore[reportUnknownVariableType]
    if not isinstance(errors, list):
        return False
    return any(isinstance(e, dict) and e.get("code") == "already_exists" for e in errors)  # pyright: ignore[reportUnknownArgumentType,reportUnknownVariableType]


def sync_labels(
    source_labels: Sequence[Label],
    github_repo: GithubRepository,
    *,
    bootstrap: bool,
) -> int:
    """Union-merge GitLab labels into GitHub.

    On a freshly created repository every source label is pushed. On an existing
    repository only labels whose name is absent are created. Existing GitHub
    labels are never deleted, renamed or recolored. Names are compared
    case-insensitively, as GitHub does.

    Args:
        source_labels: Labels of the GitLab project
        github_repo: The GitHub repository to create labels in
        bootstrap: True when the GitHub repository was created in this run

    Returns:
        Number of labels created

    Raises:
        MigrationError: If the existing GitHub labels cannot be listed
    """
    existing: set[str] = set()
    if not bootstrap:
        try:
            existing = {label.name.lower() for label in github_repo.get_labels()}
        except GithubException as e:
            msg = f"Failed to list GitHub labels: {e}"
            raise MigrationError(msg) from e

    created = 0
    for label in source_labels:
        if label.name.lower() in existing:
            logger.debug(f"Label already present: {label.name}")
            continue

        try:
            github_repo.create_label(name=label.name, color=label.color, description=label.description)
        except GithubException as e:
            if _is_already_exists_error(e):
                # GitHub provisions default labels on new repositories
                logger.debug(f"Label already existed: {label.name}")
            else:
                logger.warning(f"Failed to create label {label.name}: {e}")
            continue

        existing.add(label.name.lower())
        created += 1
        logger.debug(f"Created label: {label.name}")

    logger.info(f"Created {created} of {len(source_labels)} labels")
    return created
