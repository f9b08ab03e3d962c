"""Git repository operations using git CLI."""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING

from .exceptions import GitCommandError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

logger: logging.Logger = logging.getLogger(__name__)

DESTINATION_REMOTE = "github"
# Local namespace for single refs fetched from the source for repair pushes
SOURCE_REF_NAMESPACE = "refs/migration/source"


def _inject_token(url: str, token: str | None, prefix: str = "") -> str:
    """Inject authentication token into HTTPS URL.

    Args:
        url: The URL to modify
        token: Token to inject (if None, returns original URL)
        prefix: Prefix before token (e.g., "oauth2:" for GitLab)

    Returns:
        URL with token injected, or original if not HTTPS or no token
    """
    if not token or not url.startswith("https://"):
        return url
    return url.replace("https://", f"https://{prefix}{token}@", 1)


def _sanitize_error(error: str, tokens: Sequence[str | None]) -> str:
    """Remove tokens from error message to prevent leakage.

    Args:
        error: Error message that may contain tokens
        tokens: List of tokens to redact (None values are ignored)

    Returns:
        Error message with tokens replaced by ***TOKEN***
    """
    result = error
    for token in tokens:
        if token:
            result = result.replace(token, "***TOKEN***")
    return result


def source_auth_url(url: str, token: str | None) -> str:
    """Source (GitLab) clone URL with the token injected."""
    return _inject_token(url, token, prefix="oauth2:")


def destination_auth_url(url: str, token: str | None) -> str:
    """Destination (GitHub) clone URL with the token injected."""
    return _inject_token(url, token, prefix="")


class GitRunner:
    """Runs git commands and redacts the tokens it knows about from every diagnostic."""

    def __init__(self, tokens: Sequence[str | None] = ()) -> None:
        self.tokens: list[str | None] = list(tokens)

    def sanitize(self, text: str) -> str:
        return _sanitize_error(text, self.tokens)

    def run(self, args: Sequence[str], *, cwd: Path | str | None = None) -> str:
        """Run `git <args>` and return stdout.

        Raises:
            GitCommandError: If git exits with a non-zero status or cannot be started
        """
        # Never put credentials in the log, not even at debug level
        logger.debug(f"git {self.sanitize(' '.join(args))}")
        try:
            result = subprocess.run(  # noqa: S603
                ["git", *args],  # noqa: S607
                cwd=cwd,
                check=False,
                capture_output=True,
                # Ref names are bytes; surrogateescape keeps non-UTF-8 names intact when passed back to git
                encoding="utf-8",
                errors="surrogateescape",
            )
        except OSError as e:
            msg = f"Failed to run git {args[0] if args else ''}: {self.sanitize(str(e))}"
            raise GitCommandError(msg) from e

        if result.returncode != 0:
            msg = f"git {args[0] if args else ''} failed: {self.sanitize(result.stderr.strip())}"
            raise GitCommandError(msg)
        return result.stdout

    def clone_mirror(self, url: str, path: Path) -> None:
        """Bare mirror clone with every ref of the source."""
        self.run(["clone", "--mirror", url, str(path)])

    def init_working_clone(self, path: Path, source_url: str, destination_url: str) -> None:
        """Create an empty working clone with both remotes, for single-ref fetch and push."""
        path.mkdir(parents=True, exist_ok=True)
        self.run(["init", "--quiet"], cwd=path)
        self.run(["remote", "add", "origin", source_url], cwd=path)
        self.run(["remote", "add", DESTINATION_REMOTE, destination_url], cwd=path)

    def add_remote(self, path: Path, name: str, url: str) -> None:
        self.run(["remote", "add", name, url], cwd=path)

    def fetch(self, path: Path, remote: str, *refspecs: str, tags: bool = False) -> None:
        args = ["fetch", remote, *refspecs]
        if tags:
            args.insert(1, "--tags")
        self.run(args, cwd=path)

    def push(
        self,
        path: Path,
        remote: str,
        *refspecs: str,
        force: bool = False,
        mirror: bool = False,
    ) -> None:
        args = ["push"]
        if mirror:
            args.append("--mirror")
        if force:
            args.append("--force")
        args.append(remote)
        args.extend(refspecs)
        self.run(args, cwd=path)

    def list_local_branches(self, path: Path) -> list[str]:
        output = self.run(["for-each-ref", "--format=%(refname:short)", "refs/heads"], cwd=path)
        return [line.strip() for line in output.splitlines() if line.strip()]

    def list_remote_tags(self, url: str) -> set[str]:
        """Return tag names advertised by a remote, without peeled (^{}) entries."""
        output = self.run(["ls-remote", "--tags", "--refs", url])
        tags: set[str] = set()
        for line in output.splitlines():
            parts = line.split("\t", 1)
            if len(parts) == 2 and parts[1].startswith("refs/tags/"):
                tags.add(parts[1].removeprefix("refs/tags/"))
        return tags

    def fetch_source_branch(self, path: Path, branch: str) -> str:
        """Fetch one source branch into the local migration namespace and return the local ref."""
        local_ref = f"{SOURCE_REF_NAMESPACE}/{branch}"
        self.fetch(path, "origin", f"+refs/heads/{branch}:{local_ref}")
        return local_ref

    def fetch_source_tag(self, path: Path, tag: str) -> str:
        local_ref = f"refs/tags/{tag}"
        self.fetch(path, "origin", f"+{local_ref}:{local_ref}")
        return local_ref
