# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Configuration file loading.

The configuration is a JSON document with per-variant output settings and
changelog settings::

    {
        "outputs": {
            "default": {"baseFileName": "app"},
            "cabinetDebug": {
                "baseFileName": "cabinet",
                "useStubsForTagAsFallback": false,
                "buildTagPatternBuilderFunctions": [
                    "literal(cabinet)", "separator(+)", "anyBeforeDot()",
                    "buildVersion()", "separator(-)", "buildVariantName()"
                ]
            }
        },
        "changelog": {
            "issueNumberPattern": "AT-\\\\d+",
            "issueUrlPrefix": "https://jira.example.com/browse/",
            "commitMessageKey": "CHANGELOG"
        }
    }

Variants without an entry use ``default``. Pattern descriptors are parsed
while loading so that a malformed pattern fails before any tag is read.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from tagversion.build import VERSION_CODE_STRATEGIES, VERSION_NAME_STRATEGIES, BuildConfig, DefaultConfig
from tagversion.changelog import LINK_FORMATS, ChangelogConfig
from tagversion.errors import ConfigError
from tagversion.pattern import PatternToken, parse_descriptors

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = "default"
DEFAULT_ISSUE_NUMBER_PATTERN = r"[A-Z][A-Z0-9]+-\d+"


@dataclass(frozen=True)
class OutputConfig:
    """Output settings of one build variant."""

    name: str
    base_file_name: str | None = None
    build: BuildConfig = field(default_factory=BuildConfig)
    pattern_tokens: tuple[PatternToken, ...] | None = None


@dataclass(frozen=True)
class Config:
    """Parsed configuration file."""

    outputs: dict[str, OutputConfig] = field(default_factory=dict)
    changelog: ChangelogConfig = field(
        default_factory=lambda: ChangelogConfig(issue_number_pattern=DEFAULT_ISSUE_NUMBER_PATTERN, issue_url_prefix="")
    )

    def output_for(self, variant: str) -> OutputConfig:
        """Return the output settings for a variant, falling back to ``default``."""
        if variant in self.outputs:
            return self.outputs[variant]
        if DEFAULT_OUTPUT in self.outputs:
            return self.outputs[DEFAULT_OUTPUT]
        return OutputConfig(name=DEFAULT_OUTPUT)


def _typed(data: dict[str, Any], key: str, expected: type | tuple[type, ...], default: Any, where: str) -> Any:
    value = data.get(key, default)
    if value is default:
        return value
    # bool is an int subclass; keep flags and numbers apart
    if isinstance(value, bool) and expected is int:
        raise ConfigError(f"'{where}.{key}' must be {expected.__name__}")
    if not isinstance(value, expected):
        name = expected.__name__ if isinstance(expected, type) else " or ".join(t.__name__ for t in expected)
        raise ConfigError(f"'{where}.{key}' must be {name}")
    return value


def parse_output(name: str, data: Any) -> OutputConfig:
    """Parse one entry of ``outputs``.

    Raises:
        ConfigError: If a value has the wrong type or names an unknown strategy.
        MalformedPatternError: If a pattern descriptor is invalid.
    """
    where = f"outputs.{name}"
    if not isinstance(data, dict):
        raise ConfigError(f"'{where}' must be an object")

    version_code_strategy = _typed(data, "versionCodeStrategy", str, "build_number", where)
    if version_code_strategy not in VERSION_CODE_STRATEGIES:
        raise ConfigError(f"'{where}.versionCodeStrategy' must be one of {sorted(VERSION_CODE_STRATEGIES)}")

    version_name_strategy = _typed(data, "versionNameStrategy", str, "tag_name", where)
    if version_name_strategy not in VERSION_NAME_STRATEGIES:
        raise ConfigError(f"'{where}.versionNameStrategy' must be one of {sorted(VERSION_NAME_STRATEGIES)}")

    descriptors = _typed(data, "buildTagPatternBuilderFunctions", list, None, where)
    pattern_tokens = None
    if descriptors is not None:
        if not all(isinstance(descriptor, str) for descriptor in descriptors):
            raise ConfigError(f"'{where}.buildTagPatternBuilderFunctions' must be a list of strings")
        pattern_tokens = parse_descriptors(descriptors)

    build = BuildConfig(
        use_versions_from_tag=_typed(data, "useVersionsFromTag", bool, True, where),
        use_stubs_for_tag_as_fallback=_typed(data, "useStubsForTagAsFallback", bool, True, where),
        use_defaults_for_versions_as_fallback=_typed(data, "useDefaultsForVersionsAsFallback", bool, True, where),
        default_config=DefaultConfig(
            version_code=_typed(data, "versionCode", int, None, where),
            version_name=_typed(data, "versionName", str, None, where),
        ),
        version_code_strategy=version_code_strategy,
        version_name_strategy=version_name_strategy,
    )
    return OutputConfig(
        name=name,
        base_file_name=_typed(data, "baseFileName", str, None, where),
        build=build,
        pattern_tokens=pattern_tokens,
    )


def parse_changelog(data: Any) -> ChangelogConfig:
    """Parse the ``changelog`` section.

    Raises:
        ConfigError: If a value has the wrong type, the issue pattern is not
            a valid regular expression or the link format is unknown.
    """
    if not isinstance(data, dict):
        raise ConfigError("'changelog' must be an object")

    issue_number_pattern = _typed(data, "issueNumberPattern", str, DEFAULT_ISSUE_NUMBER_PATTERN, "changelog")
    try:
        re.compile(issue_number_pattern)
    except re.error as e:
        raise ConfigError(f"'changelog.issueNumberPattern' is not a valid regex: {e}") from e

    link_format = _typed(data, "linkFormat", str, "markdown", "changelog")
    if link_format not in LINK_FORMATS:
        raise ConfigError(f"'changelog.linkFormat' must be one of {sorted(LINK_FORMATS)}")

    return ChangelogConfig(
        issue_number_pattern=issue_number_pattern,
        issue_url_prefix=_typed(data, "issueUrlPrefix", str, "", "changelog"),
        commit_message_key=_typed(data, "commitMessageKey", str, None, "changelog") or None,
        link_format=link_format,
    )


def parse_config(data: Any) -> Config:
    """Build a Config from a decoded JSON document."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a JSON object")

    outputs_data = data.get("outputs", {})
    if not isinstance(outputs_data, dict):
        raise ConfigError("'outputs' must be an object")

    outputs = {name: parse_output(name, entry) for name, entry in outputs_data.items()}
    if "changelog" in data:
        return Config(outputs=outputs, changelog=parse_changelog(data["changelog"]))
    return Config(outputs=outputs)


def load_config(path: Path | None) -> Config:
    """Load the configuration file, or return defaults when ``path`` is None.

    Raises:
        ConfigError: If the file is missing, is not valid JSON or has invalid values.
        MalformedPatternError: If a pattern descriptor is invalid.
    """
    if path is None:
        logger.debug("No configuration file given, using defaults")
        return Config()

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Configuration file {path} cannot be read: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Configuration file {path} is not valid JSON: {e}") from e

    config = parse_config(data)
    logger.debug("Loaded configuration from %s with outputs: %s", path, ", ".join(config.outputs) or "none")
    return config
