"""Repository history synchronization from GitLab to GitHub.

Two paths exist, chosen once per repository:

- bootstrap: the GitHub repository was just created and is empty, so an exact
  mirror push (including ref deletions) is safe.
- update: the GitHub repository already exists. Source branches are
  force-pushed by name without mirror or prune semantics, so branches and tags
  that only exist on GitHub survive. Tags are pushed separately.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .exceptions import GitCommandError, MigrationError
from .git_utils import DESTINATION_REMOTE

if TYPE_CHECKING:
    from .git_utils import GitRunner
    from .workspace import Workspace

logger: logging.Logger = logging.getLogger(__name__)

ALL_BRANCHES_REFSPEC = "refs/heads/*:refs/heads/*"
ALL_TAGS_REFSPEC = "refs/tags/*:refs/tags/*"


def _clone_source(git: GitRunner, workspace: Workspace, source_url: str) -> None:
    try:
        git.clone_mirror(source_url, workspace.mirror_path)
    except GitCommandError as e:
        msg = f"Failed to clone source repository: {e}"
        raise MigrationError(msg) from e


def bootstrap_mirror(git: GitRunner, workspace: Workspace, source_url: str, destination_url: str) -> None:
    """Replicate the source into a freshly created, empty destination.

    Raises:
        MigrationError: If cloning or the mirror push fails
    """
    _clone_source(git, workspace, source_url)

    try:
        git.add_remote(workspace.mirror_path, DESTINATION_REMOTE, destination_url)
        git.push(workspace.mirror_path, DESTINATION_REMOTE, mirror=True)
    except GitCommandError as e:
        msg = f"Failed to push initial mirror: {e}"
        raise MigrationError(msg) from e

    logger.info("Repository content mirrored to new destination")


def update_mirror(git: GitRunner, workspace: Workspace, source_url: str, destination_url: str) -> list[str]:
    """Push source branches and tags into an existing destination without deleting anything there.

    Returns:
        Names of branches that could not be pushed

    Raises:
        MigrationError: If the source cannot be cloned
    """
    _clone_source(git, workspace, source_url)
    mirror_path = workspace.mirror_path

    try:
        git.fetch(mirror_path, "origin", tags=True)
    except GitCommandError as e:
        logger.warning(f"Explicit tag fetch failed, continuing with cloned tags: {e}")

    try:
        git.add_remote(mirror_path, DESTINATION_REMOTE, destination_url)
    except GitCommandError as e:
        msg = f"Failed to add destination remote: {e}"
        raise MigrationError(msg) from e

    try:
        git.fetch(mirror_path, DESTINATION_REMOTE)
    except GitCommandError as e:
        logger.warning(f"Could not fetch destination refs: {e}")

    failed_branches: list[str] = []
    try:
        git.push(mirror_path, DESTINATION_REMOTE, ALL_BRANCHES_REFSPEC, force=True)
        logger.info("Source branches pushed to destination")
    except GitCommandError as e:
        logger.warning(f"Bulk branch push failed, pushing branches one by one: {e}")
        failed_branches = push_branches_individually(git, workspace)

    try:
        git.push(mirror_path, DESTINATION_REMOTE, ALL_TAGS_REFSPEC)
        logger.info("Source tags pushed to destination")
    except GitCommandError as e:
        # Missing tags are repaired by the tag reconciliation pass
        logger.warning(f"Tag push failed: {e}")

    return failed_branches


def push_branches_individually(git: GitRunner, workspace: Workspace) -> list[str]:
    """Force-push each source branch separately so one bad ref does not block the others."""
    failed: list[str] = []
    try:
        branches = git.list_local_branches(workspace.mirror_path)
    except GitCommandError as e:
        logger.warning(f"Cannot list source branches: {e}")
        return failed

    for branch in branches:
        refspec = f"refs/heads/{branch}:refs/heads/{branch}"
        try:
            git.push(workspace.mirror_path, DESTINATION_REMOTE, refspec, force=True)
            logger.debug(f"Pushed branch {branch}")
        except GitCommandError as e:
            logger.warning(f"Failed to push branch {branch}: {e}")
            failed.append(branch)

    if failed:
        logger.warning(f"{len(failed)} of {len(branches)} branches could not be pushed")
    return failed
