"""
Command-line interface for the GitLab to GitHub sync tool.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TYPE_CHECKING

from .config import DEFAULT_MERGE_REQUEST_DELAY, SyncConfig, load_name_overrides, load_repository_list
from .exceptions import MigrationError
from .orchestrator import SyncOrchestrator
from .utils import setup_logging

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import RepositoryResult

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def parse_arguments(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Sync GitLab repositories (history, labels, CI variables, merge requests) to GitHub. Safe to rerun."
    )

    # Positional arguments
    _ = parser.add_argument("repositories", help="File with one GitLab repository URL per line (# for comments)")

    # Optional arguments with short forms
    _ = parser.add_argument(
        "--mapping",
        "-m",
        help="CSV file mapping source URL to GitHub repository name (source_url,destination_name)",
    )
    _ = parser.add_argument("--gitlab-url", help="GitLab base URL (default: $GITLAB_URL or https://gitlab.com)")
    _ = parser.add_argument(
        "--github-owner", help="GitHub organization for the repositories (default: $GITHUB_OWNER or the token's user)"
    )
    _ = parser.add_argument("--work-dir", help="Base directory for temporary clones (default: system temp dir)")
    _ = parser.add_argument(
        "--delay",
        type=float,
        default=DEFAULT_MERGE_REQUEST_DELAY,
        help=f"Seconds to wait after each merge request (default: {DEFAULT_MERGE_REQUEST_DELAY})",
    )
    _ = parser.add_argument("--skip-secrets", action="store_true", help="Do not migrate CI/CD variables")
    _ = parser.add_argument("--skip-merge-requests", action="store_true", help="Do not migrate merge requests")
    _ = parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    return parser.parse_args(argv)


def _print_summary(results: Sequence[RepositoryResult]) -> None:
    """Print one line per repository."""
    print("\n" + "=" * 60)  # noqa: T201
    print("SYNC SUMMARY")  # noqa: T201
    print("=" * 60)  # noqa: T201
    for result in results:
        if result.success:
            stats = result.stats
            status = "OK" if not stats.errors and not stats.branch_push_failures else "OK (with warnings)"
            print(  # noqa: T201
                f"{status:<18} {result.source_url} -> {result.destination} "
                f"[labels +{stats.labels_created}, secrets +{stats.secrets_created}, "
                f"MRs {stats.merge_requests_migrated}/{stats.merge_requests_skipped}/{stats.merge_requests_failed}, "
                f"tags +{stats.tags_repaired}]"
            )
        else:
            print(f"{'FAILED':<18} {result.source_url}: {result.error}")  # noqa: T201
    succeeded = sum(1 for r in results if r.success)
    print(f"\n{succeeded}/{len(results)} repositories synced")  # noqa: T201


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)

    verbose: bool = getattr(args, "verbose", False)
    setup_logging(verbose=verbose)
    logger = logging.getLogger(__name__)

    try:
        config = SyncConfig.from_env(
            gitlab_url=args.gitlab_url,
            github_owner=args.github_owner,
            work_dir=args.work_dir,
            merge_request_delay=args.delay,
            migrate_secrets=not args.skip_secrets,
            migrate_merge_requests=not args.skip_merge_requests,
        )
        source_urls = load_repository_list(args.repositories)
        overrides = load_name_overrides(args.mapping)
    except MigrationError as e:
        logger.error(str(e))  # noqa: TRY400
        sys.exit(EXIT_ERROR)

    try:
        orchestrator = SyncOrchestrator(config, overrides=overrides)
        results = orchestrator.run(source_urls)
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        sys.exit(EXIT_INTERRUPTED)
    except Exception:
        logger.exception("Sync failed")
        sys.exit(EXIT_ERROR)

    _print_summary(results)
    sys.exit(EXIT_SUCCESS)
