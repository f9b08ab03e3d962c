"""
GitLab to GitHub Sync Tool

Syncs GitLab repositories to GitHub with their history, branches, tags, labels,
CI/CD variables and merge requests. Safe to rerun against repositories that
already exist on GitHub: missing items are added, GitHub-only items are kept.
"""

from __future__ import annotations

from .cli import main
from .exceptions import MigrationError
from .orchestrator import SyncOrchestrator
from .utils import setup_logging

# Package version
__version__ = "0.1.0"

__all__ = [
    "MigrationError",
    "SyncOrchestrator",
    "main",
    "setup_logging",
]
