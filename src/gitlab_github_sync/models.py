"""Data models exchanged between the GitLab source, the GitHub destination and the sync stages.

These models are intentionally simple. They are built from python-gitlab objects
at the edge of each stage so the reconciliation logic never depends on API
object internals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple


@dataclass(frozen=True)
class RepositorySpec:
    """A source repository resolved to a GitLab project and a GitHub repository name."""

    source_url: str
    project_id: int
    project_path: str  # namespace/project, as used by the GitLab API
    encoded_path: str  # URL-encoded project path (namespace%2Fproject)
    destination_name: str
    description: str = ""
    visibility: str = "private"
    default_branch: str | None = None

    @property
    def private(self) -> bool:
        """GitLab 'private' maps to a private GitHub repository, anything else is public."""
        return self.visibility == "private"


@dataclass
class Label:
    """A label to reconcile between GitLab and GitHub."""

    name: str
    color: str  # Hex color without '#' prefix (e.g., "ff0000")
    description: str = ""


@dataclass
class SecretVariable:
    """A GitLab CI/CD variable. The value is plaintext and never leaves this process unencrypted."""

    key: str
    value: str

    def __repr__(self) -> str:
        return f"SecretVariable(key={self.key!r}, value='***')"


@dataclass
class Note:
    """A discussion note on a merge request."""

    author_name: str
    author_username: str
    body: str
    created_at: str
    system: bool = False


@dataclass
class MergeRequest:
    """A GitLab merge request, normalized for migration."""

    iid: int
    title: str
    description: str
    state: str  # opened | closed | merged | locked
    source_branch: str
    target_branch: str
    author_name: str
    author_username: str
    created_at: str
    labels: list[str] = field(default_factory=list)
    web_url: str = ""

    @classmethod
    def from_gitlab(cls, gitlab_mr: Any) -> MergeRequest:  # noqa: ANN401 - gitlab has no type stubs
        author: dict[str, Any] = gitlab_mr.author or {}
        return cls(
            iid=gitlab_mr.iid,
            title=gitlab_mr.title,
            description=gitlab_mr.description or "",
            state=gitlab_mr.state,
            source_branch=gitlab_mr.source_branch,
            target_branch=gitlab_mr.target_branch,
            author_name=author.get("name", ""),
            author_username=author.get("username", ""),
            created_at=gitlab_mr.created_at,
            labels=list(gitlab_mr.labels or []),
            web_url=getattr(gitlab_mr, "web_url", "") or "",
        )

    @property
    def is_open(self) -> bool:
        return self.state == "opened"


class PullRequestSignature(NamedTuple):
    """Content-derived identity of a migrated merge request.

    There is no stored mapping between GitLab MR ids and GitHub pull request
    numbers; two requests are the same when their signatures are equal.
    """

    title: str
    head: str
    base: str


class MergeRequestState(Enum):
    """States of the per merge request migration state machine."""

    SIGNATURE_CHECK = "signature_check"
    BRANCH_CHECK = "branch_check"
    CREATE = "create"
    ENRICH = "enrich"
    SKIPPED = "skipped"
    FAILED = "failed"
    MIGRATED = "migrated"

    @property
    def is_terminal(self) -> bool:
        return self in (MergeRequestState.SKIPPED, MergeRequestState.FAILED, MergeRequestState.MIGRATED)


@dataclass
class MergeRequestOutcome:
    """Final state of one merge request after the state machine ran."""

    iid: int
    title: str
    state: MergeRequestState
    reason: str = ""
    pull_request_number: int | None = None


@dataclass
class SyncStats:
    """Statistics collected while syncing one repository."""

    created: bool = False
    labels_created: int = 0
    secrets_created: int = 0
    merge_requests_migrated: int = 0
    merge_requests_skipped: int = 0
    merge_requests_failed: int = 0
    tags_repaired: int = 0
    branch_push_failures: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class RepositoryResult:
    """Result of syncing one repository from the input list."""

    source_url: str
    destination: str | None
    success: bool
    stats: SyncStats = field(default_factory=SyncStats)
    error: str | None = None
