"""
Tests for GitHub utilities module.
"""

from unittest.mock import Mock

import pytest
from github import GithubException, UnknownObjectException
from github.AuthenticatedUser import AuthenticatedUser

from gitlab_github_sync import MigrationError
from gitlab_github_sync.github_utils import create_repo, get_branch_names, get_repo, set_default_branch


def _client(login: str = "jdoe") -> Mock:
    client = Mock()
    user = Mock(spec=AuthenticatedUser)
    user.login = login
    client.get_user.return_value = user
    return client


@pytest.mark.unit
class TestSetDefaultBranch:
    """Test default branch setting functionality."""

    def test_set_default_branch_success(self) -> None:
        mock_repo = Mock()
        mock_repo.full_name = "owner/repo"

        set_default_branch(mock_repo, "develop")

        mock_repo.edit.assert_called_once_with(default_branch="develop")

    def test_set_default_branch_github_error(self) -> None:
        """Test that set_default_branch raises MigrationError on GitHub API error."""
        mock_repo = Mock()
        mock_repo.full_name = "owner/repo"
        mock_repo.edit = Mock(side_effect=GithubException(422, {"message": "Branch not found"}, None))

        with pytest.raises(MigrationError, match=r"Failed to set default branch to 'nonexistent'"):
            set_default_branch(mock_repo, "nonexistent")


@pytest.mark.unit
class TestGetRepo:
    def test_existing(self) -> None:
        client = Mock()
        repo = client.get_repo.return_value

        assert get_repo(client, "acme/tool") is repo
        client.get_repo.assert_called_once_with("acme/tool")

    def test_absent_returns_none(self) -> None:
        client = Mock()
        client.get_repo.side_effect = UnknownObjectException(404, {"message": "Not Found"}, None)

        assert get_repo(client, "acme/missing") is None

    def test_other_errors_raise(self) -> None:
        client = Mock()
        client.get_repo.side_effect = GithubException(401, {"message": "Bad credentials"}, None)

        with pytest.raises(MigrationError, match="Error checking repository existence"):
            get_repo(client, "acme/tool")


@pytest.mark.unit
class TestCreateRepo:
    """Test repository creation functionality."""

    def test_create_under_authenticated_user(self) -> None:
        client = _client("jdoe")

        create_repo(client, "jdoe", "tool", private=True, description="A tool")

        client.get_user.return_value.create_repo.assert_called_once_with(
            name="tool", description="A tool", private=True, has_issues=True
        )
        client.get_organization.assert_not_called()

    def test_create_under_organization(self) -> None:
        client = _client("jdoe")

        create_repo(client, "acme", "tool", private=False, description=None)

        client.get_organization.assert_called_once_with("acme")
        client.get_organization.return_value.create_repo.assert_called_once_with(
            name="tool", description="", private=False, has_issues=True
        )

    def test_unknown_owner(self) -> None:
        client = _client("jdoe")
        client.get_organization.side_effect = UnknownObjectException(404, {"message": "Not Found"}, None)

        with pytest.raises(MigrationError, match="not an organization"):
            create_repo(client, "somebody-else", "tool", private=True, description="")

    def test_creation_refused(self) -> None:
        client = _client("jdoe")
        client.get_organization.return_value.create_repo.side_effect = GithubException(
            422, {"message": "name already exists on this account"}, None
        )

        with pytest.raises(MigrationError, match="Failed to create repository acme/tool"):
            create_repo(client, "acme", "tool", private=True, description="")


@pytest.mark.unit
class TestGetBranchNames:
    def test_names(self) -> None:
        repo = Mock()
        main, feature = Mock(), Mock()
        main.name, feature.name = "main", "feature-x"
        repo.get_branches.return_value = [main, feature]

        assert get_branch_names(repo) == {"main", "feature-x"}
