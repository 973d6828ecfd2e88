# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Changelog generation from the commits between two build tags.

Commit messages are taken newest-first. When a commit message key is
configured only lines of the form ``<key>: <text>`` are kept, without the
key. Ticket references are rewritten into links.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tagversion.errors import GitError
from tagversion.pattern import compile_pattern
from tagversion.tags import resolve_snapshot

if TYPE_CHECKING:
    from tagversion.pattern import PatternToken
    from tagversion.tags import ResolvedBuild, TagSource

logger = logging.getLogger(__name__)

BULLET = "•"
NO_CHANGES_MESSAGE = "No changes compared to the previous build"

LINK_FORMATS = {
    "markdown": "[{issue}]({url})",
    "slack": "<{url}|{issue}>",
    "html": '<a href="{url}">{issue}</a>',
}


@dataclass(frozen=True)
class ChangelogConfig:
    """Changelog rendering settings."""

    issue_number_pattern: str
    issue_url_prefix: str
    commit_message_key: str | None = None
    link_format: str = "markdown"


def no_changes_message(previous: ResolvedBuild | None) -> str:
    """Return the sentinel text for an empty changelog.

    Examples:
        >>> no_changes_message(None)
        'No changes compared to the previous build'
    """
    if previous is None:
        return NO_CHANGES_MESSAGE
    return f"{NO_CHANGES_MESSAGE} ({previous.name})"


def link_issues(text: str, config: ChangelogConfig) -> str:
    """Rewrite every ticket reference in text into a link.

    Examples:
        >>> cfg = ChangelogConfig(r"AT-\\d+", "https://jira.example.com/browse/")
        >>> link_issues("AT-12 fix crash", cfg)
        '[AT-12](https://jira.example.com/browse/AT-12) fix crash'
    """
    template = LINK_FORMATS[config.link_format]

    def _link(match: re.Match[str]) -> str:
        issue = match.group(0)
        return template.format(issue=issue, url=f"{config.issue_url_prefix}{issue}")

    return re.sub(config.issue_number_pattern, _link, text)


def extract_entries(messages: Sequence[str], commit_message_key: str | None) -> list[str]:
    """Select changelog entries from chronological commit messages.

    Args:
        messages: Commit messages, oldest first.
        commit_message_key: Only keep lines starting with '<key>: ', or None
            to keep every message whole.

    Returns:
        Entry texts, newest commit first.

    Examples:
        >>> extract_entries(["A", "CHANGELOG: B", "CHANGELOG: C"], "CHANGELOG")
        ['C', 'B']
    """
    entries = []
    prefix = f"{commit_message_key}: " if commit_message_key else None
    for message in reversed(messages):
        if prefix is None:
            text = message.strip()
            if text:
                entries.append(text)
            continue

        for line in message.splitlines():
            if line.startswith(prefix):
                text = line[len(prefix) :].strip()
                if text:
                    entries.append(text)
    return entries


def generate(
    current: ResolvedBuild,
    previous: ResolvedBuild | None,
    messages: Sequence[str],
    config: ChangelogConfig,
) -> str:
    """Render the changelog of a build.

    Args:
        current: The current build.
        previous: The previous build, or None for the first build.
        messages: Commit messages after ``previous`` up to and including
            ``current``, oldest first.
        config: Rendering settings.

    Returns:
        The changelog text. A non-blank tag message of ``current`` becomes a
        ``*message*`` header, except above the first-build sentinel.
    """
    entries = [f"{BULLET} {link_issues(entry, config)}" for entry in extract_entries(messages, config.commit_message_key)]

    if not entries:
        if previous is None:
            return NO_CHANGES_MESSAGE
        entries = [no_changes_message(previous)]

    lines = []
    if current.message.strip():
        lines.append(f"*{current.message.strip()}*")
    lines.extend(entries)
    return "\n".join(lines).strip()


def generate_for_variant(
    source: TagSource,
    variant: str,
    config: ChangelogConfig,
    pattern_tokens: Sequence[PatternToken] | None = None,
) -> str:
    """Resolve the current and previous builds of a variant and render the changelog.

    A changelog is informational: missing tags and tag source failures fall
    back to the "no changes" text instead of failing.

    Args:
        source: Tag source (GitHubAPI or GitClient).
        variant: Build variant name.
        config: Rendering settings.
        pattern_tokens: Custom pattern tokens, or None for the default pattern.

    Raises:
        MalformedPatternError: If the pattern is invalid.
    """
    pattern = compile_pattern(pattern_tokens, variant)

    try:
        snapshot = resolve_snapshot(source.list_tags(), pattern)
        if snapshot is None:
            logger.warning("Failed to build a changelog for '%s': no build tags", variant)
            return NO_CHANGES_MESSAGE

        previous = snapshot.previous
        commits = source.list_commits_between(
            previous.commit_sha if previous is not None else None,
            snapshot.current.commit_sha,
        )
    except GitError as e:
        logger.warning("Failed to build a changelog for '%s': %s", variant, e)
        return NO_CHANGES_MESSAGE

    logger.info(
        "Building changelog for '%s' from %d commits since %s",
        variant,
        len(commits),
        previous.name if previous is not None else "the first commit",
    )
    return generate(snapshot.current, previous, [commit.message for commit in commits], config)
