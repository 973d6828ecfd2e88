# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Version code and version name computation for a build variant.

The build descriptor combines the resolved build tag (or a stub when none
matches) with the output configuration flags:

==================  =============  ==========  ==========================
use versions        tag resolved   use stubs   result
==================  =============  ==========  ==========================
False               -              -           defaults or empty, no tag
True                yes            -           versions from the tag
True                no             True        versions from the stub tag
True                no             False       NoTagFoundError
==================  =============  ==========  ==========================
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from tagversion.errors import ConfigError, NoTagFoundError
from tagversion.pattern import compile_pattern
from tagversion.tags import ResolvedBuild, TagMatch, resolve

if TYPE_CHECKING:
    from tagversion.pattern import PatternToken
    from tagversion.tags import TagSource

logger = logging.getLogger(__name__)

DEFAULT_BUILD_VERSION = "0.0"
DEFAULT_VERSION_CODE = 1
DEFAULT_BASE_FILE_NAME = "dev"
STUB_TAG_NAME = f"v{DEFAULT_BUILD_VERSION}.{DEFAULT_VERSION_CODE}-%s"
STUB_COMMIT_SHA = "hardcoded_default_stub_commit_sha"
STUB_COMMIT_MESSAGE = "hardcoded_default_stub_commit_message"

APK_DATE_FORMAT = "%d%m%Y"


@dataclass(frozen=True)
class DefaultConfig:
    """Static version values configured for a variant."""

    version_code: int | None = None
    version_name: str | None = None


@dataclass(frozen=True)
class BuildConfig:
    """Version resolution flags for one build variant."""

    use_versions_from_tag: bool = True
    use_stubs_for_tag_as_fallback: bool = True
    use_defaults_for_versions_as_fallback: bool = True
    default_config: DefaultConfig = field(default_factory=DefaultConfig)
    version_code_strategy: str = "build_number"
    version_name_strategy: str = "tag_name"


@dataclass(frozen=True)
class BuildDescriptor:
    """Computed versions for a variant and the build they came from."""

    version_code: int | None
    version_name: str | None
    build: ResolvedBuild | None = None


def stub_build(variant: str) -> ResolvedBuild:
    """Return the placeholder build used when no tag matches.

    Examples:
        >>> stub_build("debug").name
        'v0.0.1-debug'
    """
    return ResolvedBuild(
        name=STUB_TAG_NAME % variant,
        commit_sha=STUB_COMMIT_SHA,
        message=STUB_COMMIT_MESSAGE,
        build_version=DEFAULT_BUILD_VERSION,
        build_variant=variant,
        build_number=DEFAULT_VERSION_CODE,
    )


def _flattened_version_code(build: ResolvedBuild) -> int:
    # (major * 1000 + minor) * 1000 + build number
    parts = build.build_version.split(".")
    major = int(parts[0]) if parts and parts[0] else 0
    minor = int(parts[1]) if len(parts) > 1 else 0
    return (major * 1000 + minor) * 1000 + build.build_number


VERSION_CODE_STRATEGIES: dict[str, Callable[[ResolvedBuild], int]] = {
    "build_number": lambda build: build.build_number,
    "semantic_flattened": _flattened_version_code,
}

VERSION_NAME_STRATEGIES: dict[str, Callable[[ResolvedBuild], str]] = {
    "tag_name": lambda build: build.name,
    "build_version": lambda build: build.build_version,
    "build_version_number": lambda build: f"{build.build_version}.{build.build_number}",
    "build_version_variant": lambda build: f"{build.build_version}-{build.build_variant}",
    "build_version_number_variant": lambda build: f"{build.build_version}.{build.build_number}-{build.build_variant}",
}


def _versions_from_build(build: ResolvedBuild, config: BuildConfig) -> BuildDescriptor:
    try:
        version_code = VERSION_CODE_STRATEGIES[config.version_code_strategy](build)
        version_name = VERSION_NAME_STRATEGIES[config.version_name_strategy](build)
    except KeyError as e:
        raise ConfigError(f"Unknown version strategy {e}") from e
    return BuildDescriptor(version_code=version_code, version_name=version_name, build=build)


def build_descriptor(resolved: TagMatch | None, variant: str, config: BuildConfig) -> BuildDescriptor:
    """Compute the version code and name for a variant.

    Args:
        resolved: The winning tag match, or None when no tag matched.
        variant: Build variant name (e.g., 'googleDebug').
        config: Version resolution flags.

    Returns:
        BuildDescriptor. ``build`` is None only when versions do not come
        from tags.

    Raises:
        NoTagFoundError: If versions come from tags, no tag matched and stubs
            are disabled.
    """
    if not config.use_versions_from_tag:
        if config.use_defaults_for_versions_as_fallback:
            logger.info("Using default versions for '%s'", variant)
            return BuildDescriptor(
                version_code=config.default_config.version_code,
                version_name=config.default_config.version_name,
            )
        logger.info("Versions for '%s' are not set", variant)
        return BuildDescriptor(version_code=None, version_name=None)

    if resolved is not None:
        return _versions_from_build(ResolvedBuild.from_match(resolved, variant), config)

    if config.use_stubs_for_tag_as_fallback:
        logger.warning("No tag found for '%s', using stub tag. Do not use it for release", variant)
        return _versions_from_build(stub_build(variant), config)

    raise NoTagFoundError(
        f"There is no last tag for '{variant}' build variant. "
        "Check that a tag for that build variant exists and was fetched."
    )


def describe_variant(
    source: TagSource,
    variant: str,
    config: BuildConfig,
    pattern_tokens: Sequence[PatternToken] | None = None,
) -> BuildDescriptor:
    """Resolve the last tag of a variant from a tag source and build its versions.

    The pattern is compiled first so that a malformed pattern fails even when
    tags are not used. Tags are only listed when versions come from tags.

    Args:
        source: Tag source (GitHubAPI or GitClient).
        variant: Build variant name.
        config: Version resolution flags.
        pattern_tokens: Custom pattern tokens, or None for the default pattern.

    Raises:
        MalformedPatternError: If the pattern is invalid.
        NoTagFoundError: See build_descriptor().
    """
    pattern = compile_pattern(pattern_tokens, variant)
    if not config.use_versions_from_tag:
        return build_descriptor(None, variant, config)

    logger.info("Searching last tag for '%s' with pattern %s", variant, pattern.describe())
    resolved = resolve(source.list_tags(), pattern)
    return build_descriptor(resolved, variant, config)


def output_file_name(
    base_file_name: str | None,
    build: ResolvedBuild | None,
    output_name: str,
    today: date | None = None,
) -> str:
    """Compute the output artifact file name for a variant.

    Args:
        base_file_name: Configured base file name, or None for 'dev'.
        build: The build descriptor, or None when versions do not come from tags.
        output_name: The file name produced by the build (e.g., 'app-debug.apk').
        today: Date to stamp APK names with (defaults to today).

    Returns:
        '<base>-<variant>-vc<code>-<ddMMyyyy>.apk' for APKs with a build,
        '<base>-<ddMMyyyy>.apk' for APKs without, '<base>.<ext>' otherwise.

    Examples:
        >>> output_file_name("app", stub_build("debug"), "out.apk", date(2026, 1, 2))
        'app-debug-vc1-02012026.apk'
        >>> output_file_name(None, None, "out.aab")
        'dev.aab'
    """
    base = base_file_name or DEFAULT_BASE_FILE_NAME
    stamp = (today or date.today()).strftime(APK_DATE_FORMAT)
    if output_name.endswith(".apk"):
        if build is not None:
            return f"{base}-{build.build_variant}-vc{build.build_number}-{stamp}.apk"
        return f"{base}-{stamp}.apk"
    extension = output_name.rsplit(".", 1)[-1]
    return f"{base}.{extension}"
