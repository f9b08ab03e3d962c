"""Sync orchestrator that drives every stage for every repository of the input list.

Sync Flow
---------
For each source URL (strictly sequential, one repository at a time):

Phase 1: Identity
    - Resolve the URL to a GitLab project id and a GitHub repository name
    - A failure here skips the repository

Phase 2: Repository content (inside a disposable Workspace)
    - GitHub repository absent: create it, mirror clone, mirror push
    - GitHub repository present: mirror clone, force-push branches by name,
      push tags; GitHub-only branches and tags are never touched

Phase 3: Metadata (each stage best-effort)
    - Labels: union-merge by name
    - Secrets: create-if-absent from GitLab CI/CD variables
    - Merge requests: signature-checked pull requests with comments
    - Tags: per-tag repair of anything the bulk push missed

Error Handling
--------------
Failures that make the rest of a repository meaningless (identity, repository
creation, clone, initial mirror push) raise MigrationError; the repository is
reported as failed and the loop moves on. Any other exception is logged with
its traceback and fails only that repository. Failures inside a metadata stage are
logged and recorded in SyncStats.errors. There is no rollback: rerunning the
whole tool converges.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

import requests
from github import GithubException
from gitlab.exceptions import GitlabError

from . import github_utils as ghu
from . import gitlab_utils as glu
from .exceptions import MigrationError
from .git_utils import GitRunner, destination_auth_url, source_auth_url
from .identity import resolve_repository
from .labels import sync_labels
from .merge_requests import MergeRequestMigrator
from .mirror import bootstrap_mirror, update_mirror
from .models import MergeRequestState, RepositoryResult, SyncStats
from .tags import reconcile_tags
from .variables import migrate_secrets
from .workspace import repository_workspace

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from github import Github
    from github.Repository import Repository
    from gitlab import Gitlab

    from .config import SyncConfig
    from .models import RepositorySpec
    from .workspace import Workspace

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors a metadata stage may raise without ending the repository
_STAGE_ERRORS = (MigrationError, GithubException, GitlabError, requests.RequestException)


class SyncOrchestrator:
    """Syncs a list of GitLab repositories into GitHub.

    Usage:
        orchestrator = SyncOrchestrator(config, overrides=load_name_overrides(path))
        results = orchestrator.run(load_repository_list(list_path))

    The orchestrator keeps no state between repositories besides the API
    clients and the resolved GitHub owner.
    """

    def __init__(
        self,
        config: SyncConfig,
        *,
        overrides: Mapping[str, str] | None = None,
        gitlab_client: Gitlab | None = None,
        github_client: Github | None = None,
    ) -> None:
        self.config: SyncConfig = config
        self.overrides: dict[str, str] = dict(overrides or {})
        self.gitlab_client: Gitlab = gitlab_client or glu.get_client(config.gitlab_url, config.gitlab_token)
        self.github_client: Github = github_client or ghu.get_client(config.github_token)
        self.git: GitRunner = GitRunner(tokens=[config.gitlab_token, config.github_token])
        self._owner: str | None = config.github_owner

    @property
    def owner(self) -> str:
        """GitHub namespace of the destination repositories."""
        if self._owner is None:
            self._owner = ghu.get_authenticated_login(self.github_client)
        return self._owner

    def run(self, source_urls: Iterable[str]) -> list[RepositoryResult]:
        """Sync every repository; a failing repository never stops the run."""
        urls = list(source_urls)
        results: list[RepositoryResult] = []
        for idx, source_url in enumerate(urls, start=1):
            logger.info(f"[{idx}/{len(urls)}] Syncing {source_url}")
            results.append(self.sync_repository(source_url))

        succeeded = sum(1 for result in results if result.success)
        logger.info(f"Sync finished: {succeeded} of {len(results)} repositories succeeded")
        return results

    def sync_repository(self, source_url: str) -> RepositoryResult:
        """Sync one repository and report instead of raising."""
        stats = SyncStats()
        destination: str | None = None
        try:
            spec = resolve_repository(self.gitlab_client, source_url, self.overrides)
            destination = f"{self.owner}/{spec.destination_name}"
            with repository_workspace(self.config.base_work_dir, spec.destination_name) as workspace:
                self._sync(spec, destination, workspace, stats)
        except MigrationError as e:
            logger.error(f"Skipping {source_url}: {e}")  # noqa: TRY400 - expected failure, no traceback
            return RepositoryResult(source_url=source_url, destination=destination, success=False, stats=stats, error=str(e))
        except Exception as e:  # noqa: BLE001
            logger.exception(f"Unexpected error while syncing {source_url}")
            return RepositoryResult(source_url=source_url, destination=destination, success=False, stats=stats, error=str(e))

        _log_stats(destination, stats)
        return RepositoryResult(source_url=source_url, destination=destination, success=True, stats=stats)

    def _sync(self, spec: RepositorySpec, destination: str, workspace: Workspace, stats: SyncStats) -> None:
        source_url = source_auth_url(spec.source_url, self.config.gitlab_token)

        github_repo = ghu.get_repo(self.github_client, destination)
        bootstrap = github_repo is None

        if github_repo is None:
            logger.info(f"Creating {destination}")
            github_repo = ghu.create_repo(
                self.github_client,
                self.owner,
                spec.destination_name,
                private=spec.private,
                description=spec.description,
            )
            stats.created = True
            destination_url = destination_auth_url(github_repo.clone_url, self.config.github_token)
            bootstrap_mirror(self.git, workspace, source_url, destination_url)
            self._set_default_branch(github_repo, spec, stats)
        else:
            logger.info(f"Updating existing {destination}")
            destination_url = destination_auth_url(github_repo.clone_url, self.config.github_token)
            stats.branch_push_failures = update_mirror(self.git, workspace, source_url, destination_url)

        gitlab_project = self.gitlab_client.projects.get(spec.project_id, lazy=True)

        created_labels = self._run_stage(
            "labels",
            stats,
            lambda: sync_labels(glu.get_labels(gitlab_project), github_repo, bootstrap=bootstrap),
        )
        stats.labels_created = created_labels or 0

        if self.config.migrate_secrets:
            created_secrets = self._run_stage(
                "secrets",
                stats,
                lambda: migrate_secrets(glu.get_variables(gitlab_project), self.github_client, github_repo),
            )
            stats.secrets_created = created_secrets or 0

        if self.config.migrate_merge_requests:
            migrator = MergeRequestMigrator(
                gitlab_project,
                github_repo,
                self.git,
                workspace,
                source_url=source_url,
                destination_url=destination_url,
                delay=self.config.merge_request_delay,
            )
            outcomes = self._run_stage("merge requests", stats, migrator.migrate_all) or []
            stats.merge_requests_migrated = sum(1 for o in outcomes if o.state is MergeRequestState.MIGRATED)
            stats.merge_requests_skipped = sum(1 for o in outcomes if o.state is MergeRequestState.SKIPPED)
            stats.merge_requests_failed = sum(1 for o in outcomes if o.state is MergeRequestState.FAILED)

        repaired_tags = self._run_stage(
            "tags", stats, lambda: reconcile_tags(self.git, workspace, source_url, destination_url)
        )
        stats.tags_repaired = repaired_tags or 0

    def _set_default_branch(self, github_repo: Repository, spec: RepositorySpec, stats: SyncStats) -> None:
        if not spec.default_branch:
            return
        try:
            ghu.set_default_branch(github_repo, spec.default_branch)
        except MigrationError as e:
            logger.warning(str(e))
            stats.errors.append(str(e))

    def _run_stage(self, name: str, stats: SyncStats, stage: Callable[[], T]) -> T | None:
        try:
            return stage()
        except _STAGE_ERRORS as e:
            logger.warning(f"Stage '{name}' failed: {e}")
            stats.errors.append(f"{name}: {e}")
            return None


def _log_stats(destination: str | None, stats: SyncStats) -> None:
    logger.info(
        f"{destination}: {'created' if stats.created else 'updated'}, "
        f"labels +{stats.labels_created}, secrets +{stats.secrets_created}, "
        f"merge requests {stats.merge_requests_migrated} migrated / {stats.merge_requests_skipped} skipped / "
        f"{stats.merge_requests_failed} failed, tags repaired {stats.tags_repaired}"
    )
    if stats.branch_push_failures:
        logger.warning(f"{destination}: branches not pushed: {', '.join(stats.branch_push_failures)}")
    for error in stats.errors:
        logger.warning(f"{destination}: {error}")
