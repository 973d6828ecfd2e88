# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Command line entry point.

Each command resolves the build tag of one build variant and reports a
different view of it: the persisted build file, the version code, the
version name, the changelog, the next tag name or the output file name.

References:
    - GitHub Actions Outputs:
      https://docs.github.com/en/actions/writing-workflows/choosing-what-your-workflow-does/passing-information-between-jobs#setting-an-output-parameter
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

from tagversion.build import BuildDescriptor, describe_variant, output_file_name
from tagversion.changelog import generate_for_variant
from tagversion.config import Config, load_config
from tagversion.errors import TagVersionError
from tagversion.git_client import GitClient
from tagversion.github_api import GitHubAPI
from tagversion.tags import TagSource, next_tag_name, read_build_file, write_build_file

logger = logging.getLogger(__name__)

COMMANDS = ("last-tag", "version-code", "version-name", "changelog", "next-tag", "apk-name")
SOURCES = ("git", "github")
DEFAULT_OUTPUT_DIR = "build/tag-versioning"


@dataclass
class CliInputs:
    """Parsed inputs from CLI arguments or environment variables."""

    command: str
    variant: str
    config: Path | None = None
    source: str = "git"
    repo_path: Path = Path(".")
    token: str = ""
    repository: str = ""
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    build_file: Path | None = None
    changelog_file: Path | None = None
    output_name: str = "app.apk"
    debug: bool = False

    @property
    def build_file_path(self) -> Path:
        """Build file of the variant: ``<output-dir>/tag-build-<variant>.json``."""
        return self.build_file or self.output_dir / f"tag-build-{self.variant}.json"


@dataclass
class CliOutputs:
    """Outputs to be written to GITHUB_OUTPUT."""

    tag: str = ""
    version_code: str = ""
    version_name: str = ""
    build_number: str = ""


def parse_inputs(args: list[str] | None = None) -> CliInputs:
    """Parse inputs from CLI arguments, defaulting to environment variables.

    CLI arguments take precedence over environment variables, so the tool
    runs the same way from a shell and from a CI job.

    Args:
        args: List of CLI arguments, or None to use environment variables only.

    Returns:
        CliInputs with parsed values.
    """
    parser = argparse.ArgumentParser(
        prog="tagversion",
        description="Derive version code, version name and changelog from build tags",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables (used as defaults when CLI args not provided):
  INPUT_COMMAND                Command to run
  INPUT_VARIANT                Build variant name (e.g. googleDebug)
  INPUT_CONFIG                 Path to the JSON configuration file
  INPUT_SOURCE                 Tag source: git or github
  INPUT_REPO_PATH              Working tree for the git source
  INPUT_OUTPUT_DIR             Directory for build files
  INPUT_DEBUG                  Enable debug logging (true/false)
  GITHUB_TOKEN                 Token for the github source
  GITHUB_REPOSITORY            Repository for the github source (owner/repo)

Examples:
  tagversion last-tag --variant googleDebug --config tagversion.json
  tagversion changelog --variant googleDebug --changelog-file changelog.md
  tagversion next-tag --variant googleDebug
        """,
    )

    parser.add_argument(
        "command",
        nargs="?",
        choices=COMMANDS,
        default=os.environ.get("INPUT_COMMAND", "last-tag"),
        help="Command to run (default: last-tag)",
    )
    parser.add_argument(
        "--variant",
        default=os.environ.get("INPUT_VARIANT", ""),
        help="Build variant name (default: from INPUT_VARIANT env)",
    )
    parser.add_argument(
        "--config",
        default=os.environ.get("INPUT_CONFIG", ""),
        help="Path to the JSON configuration file",
    )
    parser.add_argument(
        "--source",
        choices=SOURCES,
        default=os.environ.get("INPUT_SOURCE", "git"),
        help="Where tags are read from (default: git)",
    )
    parser.add_argument(
        "--repo-path",
        default=os.environ.get("INPUT_REPO_PATH", "."),
        help="Git working tree for the git source (default: current directory)",
    )
    parser.add_argument(
        "--token",
        default=os.environ.get("INPUT_TOKEN", os.environ.get("GITHUB_TOKEN", "")),
        help="GitHub token for the github source",
    )
    parser.add_argument(
        "--repository",
        default=os.environ.get("GITHUB_REPOSITORY", ""),
        help="Repository in owner/repo format for the github source",
    )
    parser.add_argument(
        "--output-dir",
        default=os.environ.get("INPUT_OUTPUT_DIR", DEFAULT_OUTPUT_DIR),
        help=f"Directory for build files (default: {DEFAULT_OUTPUT_DIR})",
    )
    parser.add_argument("--build-file", default="", help="Explicit build file path")
    parser.add_argument("--changelog-file", default="", help="Write the changelog to this file")
    parser.add_argument(
        "--output-name",
        default="app.apk",
        help="File name produced by the build, for apk-name (default: app.apk)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=os.environ.get("INPUT_DEBUG", "false").lower() == "true",
        help="Enable debug logging",
    )

    parsed = parser.parse_args(args if args is not None else [])

    if not parsed.variant:
        parser.error("a build variant is required (--variant or INPUT_VARIANT)")

    return CliInputs(
        command=parsed.command,
        variant=parsed.variant,
        config=Path(parsed.config) if parsed.config else None,
        source=parsed.source,
        repo_path=Path(parsed.repo_path),
        token=parsed.token,
        repository=parsed.repository,
        output_dir=Path(parsed.output_dir),
        build_file=Path(parsed.build_file) if parsed.build_file else None,
        changelog_file=Path(parsed.changelog_file) if parsed.changelog_file else None,
        output_name=parsed.output_name,
        debug=parsed.debug,
    )


def configure_logging(debug: bool) -> None:
    """Configure logging based on debug flag.

    Args:
        debug: If True, enable DEBUG level logging.
    """
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def set_outputs(outputs: CliOutputs) -> None:
    """Append outputs to the GITHUB_OUTPUT file when running in a workflow."""
    output_file = os.environ.get("GITHUB_OUTPUT", "")
    if not output_file:
        logger.debug("GITHUB_OUTPUT not set, outputs will not be written")
        return

    with open(output_file, "a") as f:
        f.write(f"tag={outputs.tag}\n")
        f.write(f"version-code={outputs.version_code}\n")
        f.write(f"version-name={outputs.version_name}\n")
        f.write(f"build-number={outputs.build_number}\n")

    logger.info("Set outputs: tag=%s, version-code=%s", outputs.tag, outputs.version_code)


def create_source(inputs: CliInputs) -> TagSource:
    """Create the tag source selected by the inputs."""
    if inputs.source == "github":
        return GitHubAPI(token=inputs.token, repository=inputs.repository)
    return GitClient(inputs.repo_path)


def _outputs_for(descriptor: BuildDescriptor) -> CliOutputs:
    build = descriptor.build
    return CliOutputs(
        tag=build.name if build is not None else "",
        version_code="" if descriptor.version_code is None else str(descriptor.version_code),
        version_name=descriptor.version_name or "",
        build_number=str(build.build_number) if build is not None else "",
    )


def handle_last_tag(source: TagSource, config: Config, inputs: CliInputs) -> CliOutputs:
    """Resolve the last tag of the variant and write its build file.

    No build file is written when versions do not come from tags or when
    resolution fails.
    """
    output = config.output_for(inputs.variant)
    descriptor = describe_variant(source, inputs.variant, output.build, output.pattern_tokens)
    if descriptor.build is not None:
        write_build_file(descriptor.build, inputs.build_file_path)
    else:
        logger.info("Build file not written for '%s': versions do not come from tags", inputs.variant)
    return _outputs_for(descriptor)


def handle_versions(source: TagSource, config: Config, inputs: CliInputs) -> CliOutputs:
    """Compute and print the version code or version name of the variant."""
    output = config.output_for(inputs.variant)
    descriptor = describe_variant(source, inputs.variant, output.build, output.pattern_tokens)
    outputs = _outputs_for(descriptor)
    print(outputs.version_code if inputs.command == "version-code" else outputs.version_name)
    return outputs


def handle_changelog(source: TagSource, config: Config, inputs: CliInputs) -> CliOutputs:
    """Render the changelog of the variant to stdout or the changelog file."""
    output = config.output_for(inputs.variant)
    changelog = generate_for_variant(source, inputs.variant, config.changelog, output.pattern_tokens)
    if inputs.changelog_file is not None:
        inputs.changelog_file.parent.mkdir(parents=True, exist_ok=True)
        inputs.changelog_file.write_text(changelog, encoding="utf-8")
        logger.info("Wrote changelog for '%s' to %s", inputs.variant, inputs.changelog_file)
    else:
        print(changelog)
    return CliOutputs()


def handle_next_tag(config: Config, inputs: CliInputs) -> CliOutputs:
    """Print the tag name following the one in the variant's build file."""
    build = read_build_file(inputs.build_file_path)
    tag = next_tag_name(build, config.output_for(inputs.variant).pattern_tokens)
    print(tag)
    return CliOutputs(tag=tag, build_number=str(build.build_number + 1))


def handle_apk_name(source: TagSource, config: Config, inputs: CliInputs) -> CliOutputs:
    """Print the output file name of the variant."""
    output = config.output_for(inputs.variant)
    descriptor = describe_variant(source, inputs.variant, output.build, output.pattern_tokens)
    print(output_file_name(output.base_file_name, descriptor.build, inputs.output_name))
    return _outputs_for(descriptor)


def run(inputs: CliInputs) -> CliOutputs:
    """Run one command."""
    config = load_config(inputs.config)
    if inputs.command == "next-tag":
        return handle_next_tag(config, inputs)

    source = create_source(inputs)

    if inputs.command == "last-tag":
        return handle_last_tag(source, config, inputs)
    if inputs.command in ("version-code", "version-name"):
        return handle_versions(source, config, inputs)
    if inputs.command == "changelog":
        return handle_changelog(source, config, inputs)
    return handle_apk_name(source, config, inputs)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    inputs = parse_inputs(sys.argv[1:] if argv is None else argv)
    configure_logging(inputs.debug)
    logger.debug("Command: %s, variant: %s, source: %s", inputs.command, inputs.variant, inputs.source)

    try:
        outputs = run(inputs)
    except (TagVersionError, ValueError, OSError) as e:
        logger.error("%s", e)
        sys.exit(1)

    set_outputs(outputs)


if __name__ == "__main__":  # pragma: no cover
    main()
