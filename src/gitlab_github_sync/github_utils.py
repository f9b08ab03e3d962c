from __future__ import annotations

import logging

from github import Github, GithubException, UnknownObjectException
from github.AuthenticatedUser import AuthenticatedUser
from github.Repository import Repository

from .exceptions import MigrationError

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)


def get_client(token: str | None = None) -> Github:
    """Get a GitHub client using the token."""
    return Github(token)


def get_authenticated_login(client: Github) -> str:
    """Return the login of the user owning the token."""
    try:
        user = client.get_user()
        assert isinstance(user, AuthenticatedUser)  # always true without a login argument
        return user.login
    except GithubException as e:
        msg = f"GitHub API access failed: {e}"
        raise MigrationError(msg) from e


def get_repo(client: Github, repo_path: str) -> Repository | None:
    """Return the repository, or None when it does not exist."""
    try:
        return client.get_repo(repo_path)
    except UnknownObjectException as e:
        if e.status == 404:
            return None
        msg = f"Error checking repository existence: {e}"
        raise MigrationError(msg) from e
    except GithubException as e:
        msg = f"Error checking repository existence: {e}"
        raise MigrationError(msg) from e


def create_repo(
    client: Github,
    owner: str,
    repo_name: str,
    *,
    private: bool,
    description: str | None,
) -> Repository:
    """Create the GitHub repository under an organization or the authenticated user."""
    authenticated_login = get_authenticated_login(client)

    try:
        if owner == authenticated_login:
            user = client.get_user()
            assert isinstance(user, AuthenticatedUser)  # always true
            return user.create_repo(
                name=repo_name,
                description=description or "",
                private=private,
                has_issues=True,
            )

        try:
            org = client.get_organization(owner)
        except UnknownObjectException as e:
            msg = (
                f"Cannot create repository for '{owner}'. "
                "The specified owner is not an organization and does not match "
                f"the authenticated user '{authenticated_login}'."
            )
            raise MigrationError(msg) from e
        return org.create_repo(
            name=repo_name,
            description=description or "",
            private=private,
            has_issues=True,
        )
    except GithubException as e:
        msg = f"Failed to create repository {owner}/{repo_name}: {e}"
        raise MigrationError(msg) from e


def set_default_branch(repo: Repository, branch_name: str) -> None:
    """Set the default branch of the repository."""
    try:
        repo.edit(default_branch=branch_name)
    except GithubException as e:
        msg = f"Failed to set default branch to '{branch_name}' for {repo.full_name}: {e}"
        raise MigrationError(msg) from e
    logger.debug(f"Default branch of {repo.full_name} set to {branch_name}")


def get_branch_names(repo: Repository) -> set[str]:
    """Return the current branch names of the repository."""
    return {branch.name for branch in repo.get_branches()}
