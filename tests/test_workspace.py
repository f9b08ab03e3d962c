"""Tests for per-repository workspaces."""

from pathlib import Path

import pytest
from conftest import FakeGit

from gitlab_github_sync.workspace import Workspace, repository_workspace


@pytest.mark.unit
class TestRepositoryWorkspace:
    def test_removed_on_normal_exit(self, tmp_path: Path) -> None:
        with repository_workspace(tmp_path, "tool") as workspace:
            root = workspace.root
            (root / "file").write_text("data")
            assert root.parent == tmp_path
            assert root.name.startswith("gitlab_sync_tool_")

        assert not root.exists()

    def test_removed_when_body_raises(self, tmp_path: Path) -> None:
        with pytest.raises(RuntimeError), repository_workspace(tmp_path, "tool") as workspace:
            root = workspace.root
            (root / "mirror.git").mkdir()
            raise RuntimeError("boom")

        assert not root.exists()

    def test_workspaces_are_exclusive(self, tmp_path: Path) -> None:
        with repository_workspace(tmp_path, "tool") as first, repository_workspace(tmp_path, "tool") as second:
            assert first.root != second.root

    def test_unsafe_name_characters_are_replaced(self, tmp_path: Path) -> None:
        with repository_workspace(tmp_path, "../weird name") as workspace:
            assert workspace.root.parent == tmp_path

    def test_base_dir_is_created(self, tmp_path: Path) -> None:
        base = tmp_path / "nested" / "work"
        with repository_workspace(base, "tool") as workspace:
            assert workspace.root.parent == base


@pytest.mark.unit
class TestWorkingClone:
    def test_created_once(self, tmp_path: Path) -> None:
        workspace = Workspace(root=tmp_path)
        git = FakeGit({"src": {}, "dst": {}})

        first = workspace.ensure_working_clone(git, "src", "dst")
        git.clones[first]["refs"]["refs/tags/marker"] = "x"
        second = workspace.ensure_working_clone(git, "src", "dst")

        assert first == second == workspace.working_path
        assert git.clones[second]["refs"] == {"refs/tags/marker": "x"}
