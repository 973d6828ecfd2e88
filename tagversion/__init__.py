# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Android version metadata derived from git build tags."""

from tagversion.build import BuildConfig, BuildDescriptor, DefaultConfig, build_descriptor, describe_variant
from tagversion.changelog import ChangelogConfig, generate, generate_for_variant
from tagversion.errors import MalformedPatternError, NoTagFoundError, TagVersionError
from tagversion.pattern import DEFAULT_PATTERN, CompiledPattern, compile_pattern, parse_descriptors
from tagversion.tags import ResolvedBuild, TagMatch, TagRef, resolve, resolve_snapshot

__all__ = [
    "DEFAULT_PATTERN",
    "BuildConfig",
    "BuildDescriptor",
    "ChangelogConfig",
    "CompiledPattern",
    "DefaultConfig",
    "MalformedPatternError",
    "NoTagFoundError",
    "ResolvedBuild",
    "TagMatch",
    "TagRef",
    "TagVersionError",
    "build_descriptor",
    "compile_pattern",
    "describe_variant",
    "generate",
    "generate_for_variant",
    "parse_descriptors",
    "resolve",
    "resolve_snapshot",
]
