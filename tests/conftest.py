"""Shared pytest fixtures for the test suite."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from tagversion.tags import Commit, ResolvedBuild, TagRef


def make_tag(name: str, commit_sha: str = "default_sha", message: str = "", creation_order: int = 0) -> TagRef:
    """Create a tag reference with the given name.

    Args:
        name: The tag name (e.g., 'v1.0.206-internal').
        commit_sha: The SHA of the commit the tag points to.
        message: Annotation message, empty for lightweight tags.
        creation_order: Position of the tag in creation order.
    """
    return TagRef(name=name, commit_sha=commit_sha, message=message, creation_order=creation_order)


def make_commit(sha: str, message: str) -> Commit:
    """Create a commit with the given SHA and message."""
    return Commit(sha=sha, message=message)


def make_build(
    name: str = "v1.0.5-debug",
    commit_sha: str = "sha5",
    message: str = "",
    build_version: str = "1.0",
    build_variant: str = "debug",
    build_number: int = 5,
) -> ResolvedBuild:
    """Create a resolved build with sensible defaults."""
    return ResolvedBuild(
        name=name,
        commit_sha=commit_sha,
        message=message,
        build_version=build_version,
        build_variant=build_variant,
        build_number=build_number,
    )


@pytest.fixture
def mock_tag_source() -> MagicMock:
    """Create a mock tag source for unit tests."""
    source = MagicMock()
    source.list_tags.return_value = []
    source.list_commits_between.return_value = []
    return source


@pytest.fixture
def sample_tags() -> list[TagRef]:
    """Tags of several variants, created out of build-number order."""
    return [
        make_tag("v1.0.1-debug", "sha1", creation_order=0),
        make_tag("v1.0.3-debug", "sha3", creation_order=1),
        make_tag("v1.0.2-debug", "sha2", creation_order=2),
        make_tag("v1.0.2-release", "sha2", creation_order=3),
        make_tag("v1.0.2-release-androidAuto", "sha2", creation_order=4),
        make_tag("build/3.0.0-4088", "sha3", creation_order=5),
        make_tag("v1.0.7-googleDebug", "sha3", creation_order=6),
    ]


@pytest.fixture
def github_env(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up GitHub environment variables."""
    env_vars = {
        "GITHUB_TOKEN": "test-token",
        "GITHUB_REPOSITORY": "owner/repo",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("GITHUB_OUTPUT", raising=False)
    return env_vars
