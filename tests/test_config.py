"""Tests for run configuration and input files."""

from pathlib import Path

import pytest

from gitlab_github_sync.config import (
    DEFAULT_GITLAB_URL,
    SyncConfig,
    load_name_overrides,
    load_repository_list,
    parse_repository_list,
)
from gitlab_github_sync.exceptions import MigrationError


@pytest.mark.unit
class TestRepositoryList:
    def test_blank_and_comment_lines_are_skipped(self) -> None:
        lines = [
            "# production repositories",
            "https://gitlab.com/ns/one.git",
            "",
            "   ",
            "  https://gitlab.com/ns/two.git  ",
            "#https://gitlab.com/ns/disabled.git",
        ]
        assert parse_repository_list(lines) == ["https://gitlab.com/ns/one.git", "https://gitlab.com/ns/two.git"]

    def test_order_is_preserved(self, tmp_path: Path) -> None:
        path = tmp_path / "repos.txt"
        path.write_text("https://gitlab.com/ns/b.git\nhttps://gitlab.com/ns/a.git\n")
        assert load_repository_list(path) == ["https://gitlab.com/ns/b.git", "https://gitlab.com/ns/a.git"]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(MigrationError, match="Cannot read repository list"):
            load_repository_list(tmp_path / "missing.txt")


@pytest.mark.unit
class TestNameOverrides:
    def test_none_path_gives_empty_table(self) -> None:
        assert load_name_overrides(None) == {}

    def test_two_column_csv(self, tmp_path: Path) -> None:
        path = tmp_path / "names.csv"
        path.write_text(
            "https://gitlab.com/ns/legacy.git, modern\n"
            "\n"
            "# comment,ignored\n"
            "https://gitlab.com/ns/broken.git\n"
            "https://gitlab.com/ns/other.git,renamed\n"
        )

        overrides = load_name_overrides(path)

        assert overrides == {
            "https://gitlab.com/ns/legacy.git": "modern",
            "https://gitlab.com/ns/other.git": "renamed",
        }


@pytest.mark.unit
class TestSyncConfigFromEnv:
    def test_github_token_required(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with pytest.raises(MigrationError, match="GitHub token required"):
            SyncConfig.from_env()

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
        monkeypatch.setenv("GITLAB_TOKEN", "gl-token")
        monkeypatch.setenv("GITHUB_OWNER", "env-org")
        monkeypatch.delenv("GITLAB_URL", raising=False)

        config = SyncConfig.from_env()

        assert config.github_token == "gh-token"
        assert config.gitlab_token == "gl-token"
        assert config.github_owner == "env-org"
        assert config.gitlab_url == DEFAULT_GITLAB_URL

    def test_explicit_values_override_environment(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
        monkeypatch.setenv("GITLAB_URL", "https://gitlab.env.example")
        monkeypatch.setenv("GITHUB_OWNER", "env-org")

        config = SyncConfig.from_env(
            gitlab_url="https://gitlab.example.com", github_owner="cli-org", work_dir=str(tmp_path)
        )

        assert config.gitlab_url == "https://gitlab.example.com"
        assert config.github_owner == "cli-org"
        assert config.base_work_dir == tmp_path
