"""Build GitHub pull request titles, bodies and comments from GitLab merge request data."""

from __future__ import annotations

import datetime as dt
import re
from typing import TYPE_CHECKING, Final

from .models import PullRequestSignature

if TYPE_CHECKING:
    from .models import MergeRequest, Note

# Prefix of every migrated pull request title. Part of the signature: changing it
# makes every previously migrated merge request look new.
MIGRATION_MARKER: Final[str] = "[Migrated]"

# C0 controls and DEL, except tab, newline and carriage return which are valid markdown
_CONTROL_CHARACTER_CODES = r"0[0-8bcef]|1[0-9a-f]|7f"
# A backslash run followed by either a control character or text that reads like its escape
_ESCAPE_TARGET = re.compile(rf"(\\*)(u00(?:{_CONTROL_CHARACTER_CODES})|[\x00-\x08\x0b\x0c\x0e-\x1f\x7f])")
_ESCAPED_CONTROL_CHARACTER = re.compile(rf"(\\+)u00({_CONTROL_CHARACTER_CODES})")


def _escape_match(match: re.Match[str]) -> str:
    backslashes = "\\" * (2 * len(match.group(1)))
    target = match.group(2)
    if len(target) == 1:
        return f"{backslashes}\\u{ord(target):04x}"
    return f"{backslashes}{target}"


def _unescape_match(match: re.Match[str]) -> str:
    run = len(match.group(1))
    code = match.group(2)
    # An odd run ends in the backslash that starts a real escape
    if run % 2:
        return "\\" * (run // 2) + chr(int(code, 16))
    return "\\" * (run // 2) + f"u00{code}"


def escape_control_characters(text: str) -> str:
    r"""Replace control characters with visible \u00XX escapes.

    Backslashes in front of a control character, or in front of text that
    already looks like such an escape, are doubled. The result holds no control
    characters and unescape_control_characters restores the input exactly,
    including literal "\u0001" text. Apply it once to raw text; escaping
    escaped text escapes it again.
    """
    return _ESCAPE_TARGET.sub(_escape_match, text)


def unescape_control_characters(text: str) -> str:
    """Exact inverse of escape_control_characters."""
    return _ESCAPED_CONTROL_CHARACTER.sub(_unescape_match, text)


def format_timestamp(iso_timestamp: str) -> str:
    """Format ISO 8601 timestamp to human-readable format.

    Args:
        iso_timestamp: ISO 8601 formatted timestamp string

    Returns:
        Formatted timestamp (e.g., "2024-01-15 10:30:45Z").
        Returns original value if parsing fails.
    """
    if not iso_timestamp:
        return iso_timestamp

    try:
        timestamp_dt = dt.datetime.fromisoformat(iso_timestamp)
        formatted = timestamp_dt.isoformat(sep=" ", timespec="seconds")
        return formatted.replace("+00:00", "Z")
    except (ValueError, AttributeError):
        return iso_timestamp


def migrated_title(title: str) -> str:
    """Title of the migrated pull request, exactly as stored on GitHub."""
    return f"{MIGRATION_MARKER} {escape_control_characters(title.strip())}"


def merge_request_signature(mr: MergeRequest) -> PullRequestSignature:
    """Signature a GitHub pull request carries once this merge request is migrated."""
    return PullRequestSignature(title=migrated_title(mr.title), head=mr.source_branch, base=mr.target_branch)


def build_pull_request_body(mr: MergeRequest) -> str:
    """Build the pull request body: provenance header followed by the original description."""
    labels = ", ".join(mr.labels) if mr.labels else "none"
    body = f"**Migrated from GitLab merge request !{mr.iid}**\n"
    body += f"**Original Author:** {mr.author_name} (@{mr.author_username})\n"
    body += f"**Created:** {format_timestamp(mr.created_at)}\n"
    body += f"**Labels:** {labels}\n"
    if mr.web_url:
        body += f"**GitLab URL:** {mr.web_url}\n"
    body += "\n---\n\n"
    body += mr.description
    return escape_control_characters(body)


def build_comment_body(note: Note) -> str:
    """Build a pull request comment with an attribution header."""
    body = f"**Comment by** {note.author_name} (@{note.author_username}) **on** {format_timestamp(note.created_at)}\n\n"
    body += "---\n\n"
    body += note.body
    return escape_control_characters(body)
