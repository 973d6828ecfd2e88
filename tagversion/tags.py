# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Build tag resolution.

This module matches repository tags against a compiled build tag pattern,
selects the current build tag by build number and persists the result as a
JSON build file.

The current build is the matching tag with the highest build number. Commit
order and tag creation order play no part: a tag with a higher build number
created earlier still wins.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from tagversion.errors import BuildFileError
from tagversion.pattern import compile_pattern

if TYPE_CHECKING:
    from tagversion.pattern import CompiledPattern, PatternToken

logger = logging.getLogger(__name__)

# JSON keys of a persisted build file, in output order
BUILD_FILE_KEYS = ("name", "commitSha", "message", "buildVersion", "buildVariant", "buildNumber")


@dataclass(frozen=True)
class TagRef:
    """A git tag as reported by a tag source."""

    name: str
    commit_sha: str
    message: str = ""
    creation_order: int = 0


@dataclass(frozen=True)
class Commit:
    """A commit as reported by a tag source."""

    sha: str
    message: str


class TagSource(Protocol):
    """Read access to the tags and history of a repository."""

    def list_tags(self) -> list[TagRef]: ...

    def list_commits_between(self, from_exclusive: str | None, to_inclusive: str) -> list[Commit]: ...


@dataclass(frozen=True)
class TagMatch:
    """A tag whose name matched a build tag pattern."""

    tag: TagRef
    build_version: str
    build_number: int


@dataclass(frozen=True)
class ResolvedBuild:
    """The authoritative build descriptor for one build variant."""

    name: str
    commit_sha: str
    message: str
    build_version: str
    build_variant: str
    build_number: int

    @classmethod
    def from_match(cls, match: TagMatch, variant: str) -> ResolvedBuild:
        return cls(
            name=match.tag.name,
            commit_sha=match.tag.commit_sha,
            message=match.tag.message or "",
            build_version=match.build_version,
            build_variant=variant,
            build_number=match.build_number,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "commitSha": self.commit_sha,
            "message": self.message,
            "buildVersion": self.build_version,
            "buildVariant": self.build_variant,
            "buildNumber": self.build_number,
        }

    @classmethod
    def from_dict(cls, data: Any) -> ResolvedBuild:
        """Rebuild a descriptor from its JSON object.

        Raises:
            BuildFileError: If the object is not a mapping or a key is missing
                or has the wrong type.
        """
        if not isinstance(data, dict):
            raise BuildFileError("Build file must contain a JSON object")

        for key in ("name", "commitSha", "buildVersion", "buildVariant"):
            if not isinstance(data.get(key), str):
                raise BuildFileError(f"Build file key '{key}' not found")

        build_number = data.get("buildNumber")
        if isinstance(build_number, bool) or not isinstance(build_number, int):
            raise BuildFileError("Build file key 'buildNumber' not found")

        message = data.get("message")
        return cls(
            name=data["name"],
            commit_sha=data["commitSha"],
            message=message if isinstance(message, str) else "",
            build_version=data["buildVersion"],
            build_variant=data["buildVariant"],
            build_number=build_number,
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> ResolvedBuild:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise BuildFileError(f"Build file cannot be parsed: {e}") from e
        return cls.from_dict(data)


@dataclass(frozen=True)
class TagSnapshot:
    """The current build tag and the builds before it."""

    current: ResolvedBuild
    previous_in_order: ResolvedBuild | None = None
    previous_on_different_commit: ResolvedBuild | None = None

    @property
    def previous(self) -> ResolvedBuild | None:
        """Previous build used for commit ranges (never on the current commit)."""
        return self.previous_on_different_commit

    @property
    def points_same_commit(self) -> bool:
        previous = self.previous_in_order
        return previous is not None and previous.commit_sha == self.current.commit_sha


def find_matches(tags: Iterable[TagRef], pattern: CompiledPattern) -> list[TagMatch]:
    """Return the tags whose names match the pattern, in input order.

    Tags that do not match, including tags of other variants and free-form
    tags such as 'build/3.0.0-4088', are skipped.

    Args:
        tags: Tags to inspect.
        pattern: Compiled pattern for one build variant.

    Returns:
        List of TagMatch objects, one per matching tag.
    """
    matches = []
    for tag in tags:
        parsed = pattern.match(tag.name)
        if parsed is None:
            logger.debug("Skipping tag '%s': does not match pattern for '%s'", tag.name, pattern.variant)
            continue
        build_version, build_number = parsed
        matches.append(TagMatch(tag=tag, build_version=build_version, build_number=build_number))

    logger.debug(
        "Tags matching pattern for '%s': %s",
        pattern.variant,
        ", ".join(match.tag.name for match in matches) or "none",
    )
    return matches


def _by_build_number(matches: Sequence[TagMatch]) -> list[TagMatch]:
    # Highest build number first; on a tie the later input wins
    indexed = sorted(enumerate(matches), key=lambda item: (item[1].build_number, item[0]), reverse=True)
    return [match for _, match in indexed]


def resolve(tags: Iterable[TagRef], pattern: CompiledPattern) -> TagMatch | None:
    """Find the current build tag: the match with the greatest build number.

    Args:
        tags: Tags to inspect.
        pattern: Compiled pattern for one build variant.

    Returns:
        The winning TagMatch, or None if no tag matches.

    Examples:
        >>> # With tags v1.0.206-internal, v2.0.208-internal, v0.0.209-internal
        >>> resolve(tags, compile_pattern(None, "internal")).build_number
        209
    """
    highest: TagMatch | None = None
    for match in find_matches(tags, pattern):
        if highest is None or match.build_number >= highest.build_number:
            highest = match

    if highest is None:
        logger.info("No tag matches the pattern for '%s'", pattern.variant)
    else:
        logger.info(
            "Last tag for '%s' is '%s' (build number %d)",
            pattern.variant,
            highest.tag.name,
            highest.build_number,
        )
    return highest


def resolve_snapshot(tags: Iterable[TagRef], pattern: CompiledPattern) -> TagSnapshot | None:
    """Resolve the current build together with the previous builds.

    Args:
        tags: Tags to inspect.
        pattern: Compiled pattern for one build variant.

    Returns:
        A TagSnapshot, or None if no tag matches. ``previous_in_order`` is the
        match with the next-lower build number; ``previous_on_different_commit``
        is the highest-numbered match below the current one on another commit.
    """
    ordered = _by_build_number(find_matches(tags, pattern))
    if not ordered:
        return None

    variant = pattern.variant
    current = ordered[0]
    previous_in_order = ordered[1] if len(ordered) > 1 else None
    previous_on_different_commit = next(
        (match for match in ordered[1:] if match.tag.commit_sha != current.tag.commit_sha),
        None,
    )

    snapshot = TagSnapshot(
        current=ResolvedBuild.from_match(current, variant),
        previous_in_order=ResolvedBuild.from_match(previous_in_order, variant) if previous_in_order else None,
        previous_on_different_commit=(
            ResolvedBuild.from_match(previous_on_different_commit, variant) if previous_on_different_commit else None
        ),
    )
    logger.info(
        "Tag snapshot for '%s': current '%s', previous '%s'",
        variant,
        snapshot.current.name,
        snapshot.previous.name if snapshot.previous else None,
    )
    return snapshot


def next_tag_name(build: ResolvedBuild, pattern_tokens: Sequence[PatternToken] | None = None) -> str:
    """Return the tag name of the next build.

    The tag name is matched again with the variant's pattern and the build
    number digits found there are replaced with the build number plus one.
    Names the pattern does not match fall back to replacing the last
    occurrence of the build number.

    Args:
        build: The current build.
        pattern_tokens: Pattern tokens of the variant, or None for the default
            pattern.

    Examples:
        >>> next_tag_name(ResolvedBuild("v1.0.41-debug", "sha", "", "1.0", "debug", 41))
        'v1.0.42-debug'
        >>> next_tag_name(ResolvedBuild("v1.0.2-release-android12", "sha", "", "1.0", "release", 2))
        'v1.0.3-release-android12'
    """
    next_number = str(build.build_number + 1)
    span = compile_pattern(pattern_tokens, build.build_variant).build_number_span(build.name)
    if span is not None:
        start, end = span
        return f"{build.name[:start]}{next_number}{build.name[end:]}"

    logger.debug("Tag '%s' does not match its pattern, replacing the last build number", build.name)
    head, found, tail = build.name.rpartition(str(build.build_number))
    if not found:
        return build.name
    return f"{head}{next_number}{tail}"


def write_build_file(build: ResolvedBuild, path: Path) -> None:
    """Persist a build descriptor as JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(build.to_json(), encoding="utf-8")
    logger.info("Wrote build file %s for tag '%s'", path, build.name)


def read_build_file(path: Path) -> ResolvedBuild:
    """Read a build descriptor written by write_build_file().

    Raises:
        BuildFileError: If the file is missing or invalid.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise BuildFileError(f"Build file {path} cannot be read: {e}") from e
    return ResolvedBuild.from_json(text)
