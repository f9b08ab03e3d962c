from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from gitlab import Gitlab

from .models import Label, MergeRequest, Note, SecretVariable

if TYPE_CHECKING:
    from gitlab.v4.objects import Project as GitlabProject

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)


def get_client(url: str, token: str | None = None) -> Gitlab:
    """Get a GitLab client using the token."""
    return Gitlab(url=url, private_token=token)


def get_labels(project: GitlabProject) -> list[Label]:
    """Return all project labels."""
    return [
        Label(
            name=label.name,
            color=(label.color or "").lstrip("#"),
            description=label.description or "",
        )
        for label in project.labels.list(get_all=True)
    ]


def get_variables(project: GitlabProject) -> list[SecretVariable]:
    """Return all project CI/CD variables with their plaintext values."""
    return [SecretVariable(key=variable.key, value=variable.value or "") for variable in project.variables.list(get_all=True)]


def get_merge_requests(project: GitlabProject) -> list[MergeRequest]:
    """Return all merge requests in creation order."""
    gitlab_mrs: list[Any] = project.mergerequests.list(get_all=True, state="all")
    gitlab_mrs.sort(key=lambda mr: mr.iid)
    return [MergeRequest.from_gitlab(mr) for mr in gitlab_mrs]


def get_merge_request_notes(project: GitlabProject, mr_iid: int) -> list[Note]:
    """Return notes of a merge request in chronological order, system notes included."""
    gitlab_mr = project.mergerequests.get(mr_iid, lazy=True)
    notes: list[Any] = gitlab_mr.notes.list(get_all=True)
    notes.sort(key=lambda n: n.created_at)
    return [
        Note(
            author_name=note.author.get("name", ""),
            author_username=note.author.get("username", ""),
            body=note.body or "",
            created_at=note.created_at,
            system=bool(note.system),
        )
        for note in notes
    ]
