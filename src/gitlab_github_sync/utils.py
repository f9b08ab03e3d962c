"""
Utility functions for the GitLab to GitHub sync tool.
"""

from __future__ import annotations

import logging


def setup_logging(*, verbose: bool = False, log_file: str = "migration.log") -> None:
    """Configure logging for the sync process."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(), logging.FileHandler(log_file, mode="a")],
    )
