# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Build tag pattern tokens and the compiler that turns them into a matcher.

A build tag pattern is an ordered list of tokens. Each token contributes one
regular expression fragment and the fragments are joined, in order, into a
single anchored expression. Patterns are configured as plain descriptor
strings such as ``literal(cabinet)`` or ``buildVersion()``; they are parsed
into token objects and never evaluated.

The compiled expression carries two named groups:

* ``version`` - the dot-delimited numeric run captured by ``buildVersion()``.
* ``build_number`` - digits directly following the variant name, if any.

When no digits follow the variant name, the last dot-group of the version
run is the build number, so ``v1.0.323-cabinetDebug`` yields version ``1.0``
and build number ``323``.

References:
    - Python regular expressions: https://docs.python.org/3/library/re.html
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Union

from tagversion.errors import MalformedPatternError

logger = logging.getLogger(__name__)

VERSION_GROUP = "version"
BUILD_NUMBER_GROUP = "build_number"

# Placeholder used when rendering a pattern without a concrete variant
VARIANT_PLACEHOLDER = "%s"

# name(argument), argument optionally quoted; a leading "it." is accepted
DESCRIPTOR_PATTERN = re.compile(r"^\s*(?:it\s*\.\s*)?([A-Za-z_]+)\s*\((.*)\)\s*$", re.DOTALL)


@dataclass(frozen=True)
class Literal:
    """Exact text, escaped before it reaches the expression."""

    text: str

    def fragment(self, variant: str) -> str:
        return re.escape(self.text)

    def describe(self) -> str:
        return f"literal({self.text})"


@dataclass(frozen=True)
class Separator:
    """Mandatory separator text such as ``-``, ``_`` or ``+``."""

    text: str

    def fragment(self, variant: str) -> str:
        return re.escape(self.text)

    def describe(self) -> str:
        return f"separator({self.text})"


@dataclass(frozen=True)
class OptionalSeparator:
    """Separator text that may be absent."""

    text: str

    def fragment(self, variant: str) -> str:
        return f"(?:{re.escape(self.text)})?"

    def describe(self) -> str:
        return f"optionalSeparator({self.text})"


@dataclass(frozen=True)
class AnyBeforeDot:
    """Any run of characters up to, not including, the next dot.

    The run is lazy so that a leading digit run is left to ``buildVersion()``.
    """

    def fragment(self, variant: str) -> str:
        return r"[^.]*?"

    def describe(self) -> str:
        return "anyBeforeDot()"


@dataclass(frozen=True)
class BuildVersion:
    """Dot-delimited numeric sequence; the mandatory version capture."""

    def fragment(self, variant: str) -> str:
        return rf"(?P<{VERSION_GROUP}>\d+(?:\.\d+)*)"

    def describe(self) -> str:
        return "buildVersion()"


@dataclass(frozen=True)
class BuildVariantName:
    """The build variant name followed by an optional build number."""

    def fragment(self, variant: str) -> str:
        return rf"{re.escape(variant)}(?P<{BUILD_NUMBER_GROUP}>\d+)?"

    def describe(self) -> str:
        return "buildVariantName()"


@dataclass(frozen=True)
class AnyOptionalSymbols:
    """Any trailing characters, possibly none."""

    def fragment(self, variant: str) -> str:
        return r"(?:.*)?"

    def describe(self) -> str:
        return "anyOptionalSymbols()"


PatternToken = Union[
    Literal,
    Separator,
    OptionalSeparator,
    AnyBeforeDot,
    BuildVersion,
    BuildVariantName,
    AnyOptionalSymbols,
]

_TEXT_TOKENS: dict[str, type[Literal] | type[Separator] | type[OptionalSeparator]] = {
    "literal": Literal,
    "separator": Separator,
    "optionalseparator": OptionalSeparator,
}

_BARE_TOKENS: dict[str, PatternToken] = {
    "anybeforedot": AnyBeforeDot(),
    "buildversion": BuildVersion(),
    "buildvariantname": BuildVariantName(),
    "anyoptionalsymbols": AnyOptionalSymbols(),
}

# v<version>.<build number>-<variant>, optionally followed by -<anything>
DEFAULT_PATTERN: tuple[PatternToken, ...] = (
    AnyBeforeDot(),
    BuildVersion(),
    Separator("-"),
    BuildVariantName(),
    OptionalSeparator("-"),
    AnyOptionalSymbols(),
)


def _unquote(argument: str) -> str:
    argument = argument.strip()
    if len(argument) >= 2 and argument[0] == argument[-1] and argument[0] in ("'", '"'):
        return argument[1:-1]
    return argument


def parse_descriptor(descriptor: str) -> PatternToken:
    """Parse one token descriptor string into a token.

    Names are matched case-insensitively and underscores are ignored, so
    ``buildVersion()`` and ``build_version()`` are the same token. Text
    arguments may be quoted, and a leading ``it.`` (``it.separator("-")``)
    is ignored.

    Args:
        descriptor: Descriptor such as ``separator(-)`` or ``literal("app")``.

    Returns:
        The parsed token.

    Raises:
        MalformedPatternError: If the descriptor is not a known token, a text
            token has no text, or a bare token is given an argument.

    Examples:
        >>> parse_descriptor('separator("+")')
        Separator(text='+')
        >>> parse_descriptor("buildVersion()")
        BuildVersion()
    """
    match = DESCRIPTOR_PATTERN.match(descriptor)
    if not match:
        raise MalformedPatternError(f"Invalid pattern token descriptor '{descriptor}'")

    name = match.group(1).replace("_", "").lower()
    argument = _unquote(match.group(2))

    if name in _TEXT_TOKENS:
        if not argument:
            raise MalformedPatternError(f"Token '{descriptor}' requires non-empty text")
        return _TEXT_TOKENS[name](argument)

    if name in _BARE_TOKENS:
        if argument:
            raise MalformedPatternError(f"Token '{descriptor}' does not take an argument")
        return _BARE_TOKENS[name]

    raise MalformedPatternError(f"Unknown pattern token '{match.group(1)}' in '{descriptor}'")


def parse_descriptors(descriptors: Iterable[str]) -> tuple[PatternToken, ...]:
    """Parse an ordered sequence of descriptor strings."""
    return tuple(parse_descriptor(descriptor) for descriptor in descriptors)


@dataclass(frozen=True)
class CompiledPattern:
    """An anchored tag-name matcher bound to one build variant."""

    tokens: tuple[PatternToken, ...]
    variant: str
    regex: re.Pattern[str]

    @property
    def template(self) -> str:
        """The expression with the variant name left as ``%s``."""
        return "".join(token.fragment(VARIANT_PLACEHOLDER) for token in self.tokens)

    def describe(self) -> str:
        return ", ".join(token.describe() for token in self.tokens)

    def match(self, tag_name: str) -> tuple[str, int] | None:
        """Match a tag name and extract its version and build number.

        Args:
            tag_name: Full tag name (e.g., 'v1.0.206-internal').

        Returns:
            Tuple of (build_version, build_number), or None if the name does
            not match or carries no build number.

        Examples:
            >>> pattern = compile_pattern(DEFAULT_PATTERN, "internal")
            >>> pattern.match("v1.0.206-internal")
            ('1.0', 206)
            >>> pattern.match("build/3.0.0-4088") is None
            True
        """
        found = self.regex.fullmatch(tag_name)
        if found is None:
            return None

        version = found.group(VERSION_GROUP)
        trailing = found.group(BUILD_NUMBER_GROUP)
        if trailing is not None:
            return version, int(trailing)

        head, dot, tail = version.rpartition(".")
        if not dot:
            logger.debug("Tag '%s' matched but carries no build number", tag_name)
            return None
        return head, int(tail)

    def build_number_span(self, tag_name: str) -> tuple[int, int] | None:
        """Return the (start, end) position of the build number digits in a tag name.

        Returns:
            The span, or None if the name does not match or carries no build
            number.

        Examples:
            >>> compile_pattern(None, "release").build_number_span("v1.0.2-release-android12")
            (5, 6)
        """
        found = self.regex.fullmatch(tag_name)
        if found is None:
            return None

        if found.group(BUILD_NUMBER_GROUP) is not None:
            return found.span(BUILD_NUMBER_GROUP)

        start, end = found.span(VERSION_GROUP)
        dot = tag_name.rfind(".", start, end)
        if dot < 0:
            return None
        return dot + 1, end


def _count(tokens: Sequence[PatternToken], token_type: type) -> int:
    return sum(1 for token in tokens if isinstance(token, token_type))


def compile_pattern(tokens: Sequence[PatternToken] | None, variant: str) -> CompiledPattern:
    """Compile tokens into a matcher for a build variant.

    Args:
        tokens: Ordered pattern tokens, or None for ``DEFAULT_PATTERN``.
        variant: Build variant name (e.g., 'googleDebug').

    Returns:
        The compiled pattern.

    Raises:
        MalformedPatternError: If the pattern does not hold exactly one
            ``buildVersion()`` and one ``buildVariantName()``, the variant
            name is empty, or the joined expression is invalid.

    Examples:
        >>> compile_pattern(None, "debug").match("v1.2.15-debug")
        ('1.2', 15)
        >>> compile_pattern([BuildVersion()], "debug")
        Traceback (most recent call last):
        MalformedPatternError: ...
    """
    token_list = tuple(DEFAULT_PATTERN if tokens is None else tokens)

    if not variant:
        raise MalformedPatternError("Build variant name must not be empty")

    versions = _count(token_list, BuildVersion)
    if versions != 1:
        raise MalformedPatternError(
            f"Tag pattern must contain exactly one buildVersion() token, found {versions}"
        )

    variants = _count(token_list, BuildVariantName)
    if variants != 1:
        raise MalformedPatternError(
            f"Tag pattern must contain exactly one buildVariantName() token, found {variants}"
        )

    expression = "".join(token.fragment(variant) for token in token_list)
    try:
        regex = re.compile(expression)
    except re.error as e:
        raise MalformedPatternError(f"Tag pattern produced an invalid expression '{expression}': {e}") from e

    logger.debug("Compiled tag pattern for '%s': %s", variant, expression)
    return CompiledPattern(tokens=token_list, variant=variant, regex=regex)
