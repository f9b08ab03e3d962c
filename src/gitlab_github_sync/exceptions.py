"""
Custom exception classes for the GitLab to GitHub sync tool.
"""

from __future__ import annotations


class MigrationError(Exception):
    """Base exception for migration errors.

    Raised for failures that abandon the repository currently being synced.
    """


class IdentityResolutionError(MigrationError):
    """Raised when a source URL cannot be resolved to a GitLab project."""


class GitCommandError(MigrationError):
    """Raised when a git subprocess exits with a non-zero status."""
