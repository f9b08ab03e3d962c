"""
Pytest configuration and fixtures.

Provides in-memory stand-ins for the GitHub repository and the git runner so
reconciliation can be exercised end to end without network access.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from github import GithubException

from gitlab_github_sync.exceptions import GitCommandError
from gitlab_github_sync.git_utils import GitRunner
from gitlab_github_sync.models import Label, MergeRequest, Note


@dataclass
class FakePullRequest:
    number: int
    title: str
    body: str
    head_ref: str
    base_ref: str
    state: str = "open"
    labels: list[str] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)

    @property
    def head(self) -> SimpleNamespace:
        return SimpleNamespace(ref=self.head_ref)

    @property
    def base(self) -> SimpleNamespace:
        return SimpleNamespace(ref=self.base_ref)

    def add_to_labels(self, *labels: str) -> None:
        self.labels.extend(labels)

    def edit(self, *, state: str) -> None:
        self.state = state

    def create_issue_comment(self, body: str) -> None:
        self.comments.append(body)


class FakeGithubRepo:
    """The subset of PyGithub's Repository used by the sync stages, kept in memory."""

    def __init__(self, full_name: str = "github-org/test-repo", refs: dict[str, str] | None = None) -> None:
        self.full_name = full_name
        self.clone_url = f"https://github.com/{full_name}.git"
        self.pulls: list[FakePullRequest] = []
        self.labels: dict[str, Label] = {}
        # Branches are read from refs, which may be shared with a FakeGit remote
        self.refs: dict[str, str] = refs if refs is not None else {}

    @property
    def branches(self) -> set[str]:
        return {ref.removeprefix("refs/heads/") for ref in self.refs if ref.startswith("refs/heads/")}

    def add_branch(self, *names: str) -> None:
        for name in names:
            self.refs[f"refs/heads/{name}"] = f"sha-{name}"

    def get_pulls(self, state: str = "open") -> list[FakePullRequest]:
        assert state == "all"
        return list(self.pulls)

    def create_pull(self, *, title: str, body: str, head: str, base: str) -> FakePullRequest:
        if head not in self.branches or base not in self.branches:
            raise GithubException(422, {"message": "Validation Failed"}, headers={})
        pull = FakePullRequest(number=len(self.pulls) + 1, title=title, body=body, head_ref=head, base_ref=base)
        self.pulls.append(pull)
        return pull

    def get_branches(self) -> list[SimpleNamespace]:
        return [SimpleNamespace(name=name) for name in sorted(self.branches)]

    def get_labels(self) -> list[Label]:
        return list(self.labels.values())

    def create_label(self, *, name: str, color: str, description: str) -> Label:
        if name.lower() in {existing.lower() for existing in self.labels}:
            raise GithubException(
                422,
                {"message": "Validation Failed", "errors": [{"resource": "Label", "code": "already_exists"}]},
                headers={},
            )
        label = Label(name=name, color=color, description=description)
        self.labels[name] = label
        return label


@pytest.fixture
def github_repo() -> FakeGithubRepo:
    return FakeGithubRepo()


def make_merge_request(
    iid: int = 1,
    title: str = "Add login",
    source_branch: str = "login",
    target_branch: str = "main",
    **overrides: Any,
) -> MergeRequest:
    values: dict[str, Any] = {
        "iid": iid,
        "title": title,
        "description": "Implements the login form",
        "state": "opened",
        "source_branch": source_branch,
        "target_branch": target_branch,
        "author_name": "Jane Doe",
        "author_username": "jdoe",
        "created_at": "2024-01-15T10:30:45.000+00:00",
        "labels": [],
        "web_url": f"https://gitlab.com/test-org/test-project/-/merge_requests/{iid}",
    }
    values.update(overrides)
    return MergeRequest(**values)


def make_note(body: str, *, system: bool = False, created_at: str = "2024-01-16T09:00:00+00:00") -> Note:
    return Note(author_name="John Roe", author_username="jroe", body=body, created_at=created_at, system=system)


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    root.mkdir()
    return root


class FakeGit(GitRunner):
    """GitRunner whose remotes and clones are ref tables in memory.

    Remotes are keyed by URL and hold {refname: sha}. Only the plumbing the
    sync stages use is modelled: mirror clone, fetch and push with explicit
    refspecs (globs included), force and mirror pushes, ls-remote.
    """

    def __init__(self, remotes: dict[str, dict[str, str]]) -> None:
        super().__init__(tokens=[])
        self.remotes = remotes
        self.clones: dict[Path, dict[str, Any]] = {}
        self.failing_refs: set[str] = set()
        self.fail_bulk_push = False
        self.fail_clone = False
        self.pushes: list[tuple[str, tuple[str, ...], bool, bool]] = []

    def _remote_url(self, path: Path, remote: str) -> str:
        return self.clones[path]["remotes"][remote]

    def clone_mirror(self, url: str, path: Path) -> None:
        if self.fail_clone or url not in self.remotes:
            msg = f"git clone failed: repository '{url}' not found"
            raise GitCommandError(msg)
        self.clones[path] = {"refs": dict(self.remotes[url]), "remotes": {"origin": url}}

    def init_working_clone(self, path: Path, source_url: str, destination_url: str) -> None:
        path.mkdir(parents=True, exist_ok=True)
        (path / ".git").mkdir(exist_ok=True)
        self.clones[path] = {"refs": {}, "remotes": {"origin": source_url, "github": destination_url}}

    def add_remote(self, path: Path, name: str, url: str) -> None:
        self.clones[path]["remotes"][name] = url

    def fetch(self, path: Path, remote: str, *refspecs: str, tags: bool = False) -> None:
        clone = self.clones[path]
        remote_refs = self.remotes[self._remote_url(path, remote)]
        if not refspecs:
            prefix = "refs/" if remote == "origin" else f"refs/remotes/{remote}/"
            for ref, sha in remote_refs.items():
                if remote == "origin":
                    clone["refs"][ref] = sha
                elif ref.startswith("refs/heads/"):
                    clone["refs"][prefix + ref.removeprefix("refs/heads/")] = sha
            return
        for refspec in refspecs:
            src, dst = refspec.lstrip("+").split(":", 1)
            if src not in remote_refs:
                msg = f"git fetch failed: couldn't find remote ref {src}"
                raise GitCommandError(msg)
            clone["refs"][dst] = remote_refs[src]

    def push(self, path: Path, remote: str, *refspecs: str, force: bool = False, mirror: bool = False) -> None:
        self.pushes.append((remote, refspecs, force, mirror))
        clone = self.clones[path]
        remote_refs = self.remotes[self._remote_url(path, remote)]
        local = {ref: sha for ref, sha in clone["refs"].items() if ref.startswith(("refs/heads/", "refs/tags/"))}

        if mirror:
            remote_refs.clear()
            remote_refs.update(local)
            return

        is_bulk = any("*" in refspec for refspec in refspecs)
        if is_bulk and self.fail_bulk_push:
            msg = "git push failed: remote rejected"
            raise GitCommandError(msg)

        for refspec in refspecs:
            src, dst = refspec.split(":", 1)
            if "*" in src:
                src_prefix, dst_prefix = src.removesuffix("*"), dst.removesuffix("*")
                pairs = [(ref, dst_prefix + ref.removeprefix(src_prefix)) for ref in local if ref.startswith(src_prefix)]
            else:
                pairs = [(src, dst)]
            for src_ref, dst_ref in pairs:
                if dst_ref.removeprefix("refs/heads/") in self.failing_refs:
                    msg = f"git push failed: {dst_ref} rejected"
                    raise GitCommandError(msg)
                if dst_ref in remote_refs and not force:
                    continue
                remote_refs[dst_ref] = clone["refs"][src_ref]

    def list_local_branches(self, path: Path) -> list[str]:
        return [ref.removeprefix("refs/heads/") for ref in self.clones[path]["refs"] if ref.startswith("refs/heads/")]

    def list_remote_tags(self, url: str) -> set[str]:
        return {ref.removeprefix("refs/tags/") for ref in self.remotes[url] if ref.startswith("refs/tags/")}
