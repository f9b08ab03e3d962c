"""Per-tag verification and repair after the bulk mirror push."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .exceptions import GitCommandError
from .git_utils import DESTINATION_REMOTE

if TYPE_CHECKING:
    from .git_utils import GitRunner
    from .workspace import Workspace

logger: logging.Logger = logging.getLogger(__name__)


def missing_tags(source_tags: set[str], destination_tags: set[str]) -> list[str]:
    """Tags present on the source but not on the destination, in a stable order."""
    return sorted(source_tags - destination_tags)


def reconcile_tags(git: GitRunner, workspace: Workspace, source_url: str, destination_url: str) -> int:
    """Push every source tag the destination does not advertise.

    Returns:
        Number of tags repaired
    """
    try:
        source_tags = git.list_remote_tags(source_url)
        destination_tags = git.list_remote_tags(destination_url)
    except GitCommandError as e:
        logger.warning(f"Skipping tag reconciliation, cannot list tags: {e}")
        return 0

    to_repair = missing_tags(source_tags, destination_tags)
    if not to_repair:
        logger.info(f"All {len(source_tags)} tags present on destination")
        return 0

    logger.info(f"Repairing {len(to_repair)} missing tags")
    try:
        working_path = workspace.ensure_working_clone(git, source_url, destination_url)
    except GitCommandError as e:
        logger.warning(f"Cannot prepare working clone for tag repair: {e}")
        return 0

    repaired = 0
    for tag in to_repair:
        try:
            local_ref = git.fetch_source_tag(working_path, tag)
            git.push(working_path, DESTINATION_REMOTE, f"{local_ref}:{local_ref}")
        except GitCommandError as e:
            logger.warning(f"Failed to repair tag {tag}: {e}")
            continue
        repaired += 1
        logger.debug(f"Repaired tag {tag}")

    return repaired
