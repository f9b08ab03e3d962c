"""Resolve a source repository URL into a GitLab project identity and a GitHub repository name."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlparse

import requests
from gitlab.exceptions import GitlabError

from .exceptions import IdentityResolutionError
from .models import RepositorySpec

if TYPE_CHECKING:
    from collections.abc import Mapping

    from gitlab import Gitlab

logger: logging.Logger = logging.getLogger(__name__)

# git@host:namespace/project.git
_SCP_LIKE_URL = re.compile(r"^[\w.-]+@[\w.-]+:(?P<path>.+)$")


def project_path_from_url(source_url: str) -> str:
    """Extract the GitLab project path (namespace/project) from an HTTPS, SSH or scp-like URL."""
    url = source_url.strip()
    match = _SCP_LIKE_URL.match(url)
    path = match.group("path") if match and "://" not in url else urlparse(url).path

    path = path.strip("/")
    path = path.removesuffix(".git")
    if not path or "/" not in path:
        msg = f"Cannot derive a project path from '{source_url}'"
        raise IdentityResolutionError(msg)
    return path


def repository_base_name(source_url: str) -> str:
    """Return the final path segment of the URL without the .git suffix."""
    return project_path_from_url(source_url).rsplit("/", 1)[-1]


def encode_project_path(project_path: str) -> str:
    """URL-encode a project path for the GitLab REST API (namespace%2Fproject)."""
    return quote(project_path, safe="")


def destination_name_for(source_url: str, overrides: Mapping[str, str] | None = None) -> str:
    """Return the override for this exact source URL, or the repository base name."""
    if overrides:
        override = overrides.get(source_url.strip())
        if override:
            return override
    return repository_base_name(source_url)


def resolve_repository(
    gitlab_client: Gitlab,
    source_url: str,
    overrides: Mapping[str, str] | None = None,
) -> RepositorySpec:
    """Resolve the source URL to a RepositorySpec.

    Raises:
        IdentityResolutionError: If GitLab does not return a numeric project id for the path
    """
    project_path = project_path_from_url(source_url)
    destination_name = destination_name_for(source_url, overrides)

    try:
        project: Any = gitlab_client.projects.get(project_path)
    except (GitlabError, requests.RequestException) as e:
        msg = f"Failed to resolve GitLab project '{project_path}': {e}"
        raise IdentityResolutionError(msg) from e

    project_id = getattr(project, "id", None)
    # bool is an int subclass but never a valid id
    if not isinstance(project_id, int) or isinstance(project_id, bool):
        msg = f"GitLab returned no numeric project id for '{project_path}'"
        raise IdentityResolutionError(msg)

    logger.debug(f"Resolved {source_url} to GitLab project {project_id} ({project_path}) -> {destination_name}")

    return RepositorySpec(
        source_url=source_url.strip(),
        project_id=project_id,
        project_path=project_path,
        encoded_path=encode_project_path(project_path),
        destination_name=destination_name,
        description=getattr(project, "description", None) or "",
        visibility=getattr(project, "visibility", None) or "private",
        default_branch=getattr(project, "default_branch", None),
    )
