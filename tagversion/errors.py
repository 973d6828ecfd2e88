# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Exception hierarchy shared by the tag versioning modules."""

from __future__ import annotations


class TagVersionError(Exception):
    """Base class for all tag versioning failures."""


class MalformedPatternError(TagVersionError):
    """Raised when a build tag pattern cannot be parsed or compiled."""


class NoTagFoundError(TagVersionError):
    """Raised when no tag matches and no fallback is allowed."""


class BuildFileError(TagVersionError):
    """Raised when a persisted build descriptor file is missing or invalid."""


class ConfigError(TagVersionError):
    """Raised when the configuration file is missing or invalid."""


class GitError(TagVersionError):
    """Raised when a git command fails."""
