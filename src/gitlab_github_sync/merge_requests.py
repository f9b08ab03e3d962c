"""Migrate GitLab merge requests to GitHub pull requests.

Each merge request goes through an explicit state machine:

    SIGNATURE_CHECK ──► SKIPPED          (a pull request with the same signature exists)
          │
          ▼
    BRANCH_CHECK ─────► FAILED           (source or target branch missing and unrepairable)
          │
          ▼
    CREATE ───────────► FAILED           (GitHub refused the pull request)
          │
          ▼
    ENRICH ───────────► MIGRATED         (labels, closing and comments are best-effort)

Identity is never stored. The signature (marker-prefixed title, head branch,
base branch) is recomputed from content on every run, which is what makes a
rerun skip merge requests migrated earlier.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import requests
from github import GithubException
from gitlab.exceptions import GitlabError

from . import github_utils as ghu
from . import gitlab_utils as glu
from .exceptions import GitCommandError, MigrationError
from .git_utils import DESTINATION_REMOTE
from .models import MergeRequestOutcome, MergeRequestState, PullRequestSignature
from .pull_request_builder import build_comment_body, build_pull_request_body, merge_request_signature

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from github.PullRequest import PullRequest
    from github.Repository import Repository as GithubRepository
    from gitlab.v4.objects import Project as GitlabProject

    from .git_utils import GitRunner
    from .models import MergeRequest
    from .workspace import Workspace

logger: logging.Logger = logging.getLogger(__name__)

# Errors that end one step of one merge request, never the whole repository
_ITEM_ERRORS = (GithubException, GitlabError, requests.RequestException)


@dataclass
class MergeRequestMigration:
    """Mutable progress of one merge request through the state machine."""

    mr: MergeRequest
    state: MergeRequestState = MergeRequestState.SIGNATURE_CHECK
    reason: str = ""
    pull_request: PullRequest | None = None

    @property
    def signature(self) -> PullRequestSignature:
        return merge_request_signature(self.mr)

    def outcome(self) -> MergeRequestOutcome:
        return MergeRequestOutcome(
            iid=self.mr.iid,
            title=self.mr.title,
            state=self.state,
            reason=self.reason,
            pull_request_number=self.pull_request.number if self.pull_request is not None else None,
        )


def pull_request_signature(pull: Any) -> PullRequestSignature:  # noqa: ANN401 - PyGithub PullRequest or a stand-in
    return PullRequestSignature(title=pull.title, head=pull.head.ref, base=pull.base.ref)


class MergeRequestMigrator:
    """Reconciles the merge requests of one GitLab project into one GitHub repository."""

    def __init__(
        self,
        gitlab_project: GitlabProject,
        github_repo: GithubRepository,
        git: GitRunner,
        workspace: Workspace,
        *,
        source_url: str,
        destination_url: str,
        delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.gitlab_project: GitlabProject = gitlab_project
        self.github_repo: GithubRepository = github_repo
        self.git: GitRunner = git
        self.workspace: Workspace = workspace
        self.source_url: str = source_url
        self.destination_url: str = destination_url
        self.delay: float = delay
        self._sleep: Callable[[float], None] = sleep
        self._existing_signatures: set[PullRequestSignature] | None = None

        self._handlers: dict[MergeRequestState, Callable[[MergeRequestMigration], MergeRequestState]] = {
            MergeRequestState.SIGNATURE_CHECK: self._check_signature,
            MergeRequestState.BRANCH_CHECK: self._check_branches,
            MergeRequestState.CREATE: self._create,
            MergeRequestState.ENRICH: self._enrich,
        }

    @property
    def existing_signatures(self) -> set[PullRequestSignature]:
        """Signatures of every pull request on GitHub, open or closed, loaded once per run."""
        if self._existing_signatures is None:
            try:
                pulls = self.github_repo.get_pulls(state="all")
                self._existing_signatures = {pull_request_signature(pull) for pull in pulls}
            except GithubException as e:
                msg = f"Failed to list GitHub pull requests: {e}"
                raise MigrationError(msg) from e
            logger.debug(f"Found {len(self._existing_signatures)} existing pull requests")
        return self._existing_signatures

    def migrate_all(self, merge_requests: Sequence[MergeRequest] | None = None) -> list[MergeRequestOutcome]:
        """Run every merge request through the state machine, one at a time."""
        if merge_requests is None:
            try:
                merge_requests = glu.get_merge_requests(self.gitlab_project)
            except (GitlabError, requests.RequestException) as e:
                msg = f"Failed to list GitLab merge requests: {e}"
                raise MigrationError(msg) from e

        # Load before the first merge request so a listing failure aborts the stage, not one item
        _ = self.existing_signatures

        outcomes: list[MergeRequestOutcome] = []
        total = len(merge_requests)
        for idx, mr in enumerate(merge_requests, start=1):
            outcome = self.migrate(mr)
            outcomes.append(outcome)
            level = logging.WARNING if outcome.state is MergeRequestState.FAILED else logging.INFO
            logger.log(level, f"[{idx}/{total}] merge request !{mr.iid} {outcome.state.value}{_suffix(outcome)}")
            # Pacing for GitHub secondary rate limits
            self._sleep(self.delay)

        return outcomes

    def migrate(self, mr: MergeRequest) -> MergeRequestOutcome:
        """Drive one merge request from SIGNATURE_CHECK to a terminal state."""
        item = MergeRequestMigration(mr=mr)
        while not item.state.is_terminal:
            try:
                item.state = self._handlers[item.state](item)
            except MigrationError:
                # Listing pull requests failed, which ends the whole stage
                raise
            except Exception as e:  # noqa: BLE001
                logger.exception(f"Unexpected error in state {item.state.value} of merge request !{mr.iid}")
                item.reason = f"unexpected error: {e}"
                item.state = MergeRequestState.FAILED
        return item.outcome()

    def _check_signature(self, item: MergeRequestMigration) -> MergeRequestState:
        if item.signature in self.existing_signatures:
            item.reason = "already migrated"
            return MergeRequestState.SKIPPED
        return MergeRequestState.BRANCH_CHECK

    def _check_branches(self, item: MergeRequestMigration) -> MergeRequestState:
        try:
            # Re-queried per merge request: branches change while we push
            destination_branches = ghu.get_branch_names(self.github_repo)
        except _ITEM_ERRORS as e:
            item.reason = f"cannot list destination branches: {e}"
            return MergeRequestState.FAILED

        for branch in dict.fromkeys((item.mr.source_branch, item.mr.target_branch)):
            if branch in destination_branches:
                continue
            if not self._repair_branch(branch):
                item.reason = f"missing branch {branch}"
                return MergeRequestState.FAILED
            destination_branches.add(branch)

        return MergeRequestState.CREATE

    def _repair_branch(self, branch: str) -> bool:
        """Copy one branch from GitLab to GitHub under its original name."""
        try:
            working_path = self.workspace.ensure_working_clone(self.git, self.source_url, self.destination_url)
            local_ref = self.git.fetch_source_branch(working_path, branch)
            self.git.push(working_path, DESTINATION_REMOTE, f"{local_ref}:refs/heads/{branch}")
        except GitCommandError as e:
            logger.warning(f"Cannot repair branch {branch}: {e}")
            return False
        logger.info(f"Restored branch {branch} on destination")
        return True

    def _create(self, item: MergeRequestMigration) -> MergeRequestState:
        signature = item.signature
        try:
            item.pull_request = self.github_repo.create_pull(
                title=signature.title,
                body=build_pull_request_body(item.mr),
                head=signature.head,
                base=signature.base,
            )
        except _ITEM_ERRORS as e:
            item.reason = f"pull request creation failed: {e}"
            return MergeRequestState.FAILED

        self.existing_signatures.add(signature)
        logger.debug(f"Created pull request #{item.pull_request.number} for merge request !{item.mr.iid}")
        return MergeRequestState.ENRICH

    def _enrich(self, item: MergeRequestMigration) -> MergeRequestState:
        pull = item.pull_request
        if pull is None:
            item.reason = "no pull request to enrich"
            return MergeRequestState.FAILED

        if item.mr.labels:
            try:
                pull.add_to_labels(*item.mr.labels)
            except _ITEM_ERRORS as e:
                logger.warning(f"Failed to label pull request #{pull.number}: {e}")

        if not item.mr.is_open:
            try:
                pull.edit(state="closed")
            except _ITEM_ERRORS as e:
                logger.warning(f"Failed to close pull request #{pull.number}: {e}")

        self._migrate_notes(item.mr, pull)
        return MergeRequestState.MIGRATED

    def _migrate_notes(self, mr: MergeRequest, pull: PullRequest) -> None:
        try:
            notes = glu.get_merge_request_notes(self.gitlab_project, mr.iid)
        except _ITEM_ERRORS as e:
            logger.warning(f"Failed to fetch notes of merge request !{mr.iid}: {e}")
            return

        for note in notes:
            if note.system:
                continue
            try:
                pull.create_issue_comment(build_comment_body(note))
            except _ITEM_ERRORS as e:
                logger.warning(f"Failed to copy a comment of merge request !{mr.iid}: {e}")
                continue
            logger.debug(f"Migrated comment by {note.author_username}")


def _suffix(outcome: MergeRequestOutcome) -> str:
    if outcome.pull_request_number is not None:
        return f" -> #{outcome.pull_request_number}"
    return f" ({outcome.reason})" if outcome.reason else ""
