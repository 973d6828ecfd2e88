# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Unit tests for main.py command line handling.

Tests input parsing from CLI arguments and environment variables, every
command against a mocked tag source, GITHUB_OUTPUT writing and exit codes.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from tagversion.config import Config, parse_config
from tagversion.main import (
    CliInputs,
    CliOutputs,
    create_source,
    handle_apk_name,
    handle_changelog,
    handle_last_tag,
    handle_next_tag,
    handle_versions,
    main,
    parse_inputs,
    set_outputs,
)
from tagversion.tags import read_build_file, write_build_file
from tests.conftest import make_build, make_commit, make_tag


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove action inputs that would leak into parse_inputs()."""
    for key in (
        "INPUT_COMMAND",
        "INPUT_VARIANT",
        "INPUT_CONFIG",
        "INPUT_SOURCE",
        "INPUT_REPO_PATH",
        "INPUT_OUTPUT_DIR",
        "INPUT_DEBUG",
        "INPUT_TOKEN",
        "GITHUB_OUTPUT",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def debug_tags(mock_tag_source: MagicMock) -> MagicMock:
    """Mock tag source with two debug builds on different commits."""
    mock_tag_source.list_tags.return_value = [
        make_tag("v1.0.1-debug", "sha1"),
        make_tag("v1.0.2-debug", "sha2", message="Sprint 2"),
        make_tag("v1.0.9-release", "sha2"),
    ]
    mock_tag_source.list_commits_between.return_value = [make_commit("c1", "CHANGELOG: Login screen")]
    return mock_tag_source


@pytest.mark.usefixtures("clean_env")
class TestParseInputs:
    """Tests for parse_inputs() function."""

    def test_defaults(self) -> None:
        """Test the defaults with only a variant given."""
        inputs = parse_inputs(["--variant", "debug"])
        assert inputs.command == "last-tag"
        assert inputs.variant == "debug"
        assert inputs.source == "git"
        assert inputs.config is None
        assert inputs.build_file_path == Path("build/tag-versioning/tag-build-debug.json")

    def test_command_and_options(self) -> None:
        """Test a command with explicit options."""
        inputs = parse_inputs(
            ["changelog", "--variant", "googleDebug", "--config", "tv.json", "--changelog-file", "out/changelog.md"]
        )
        assert inputs.command == "changelog"
        assert inputs.config == Path("tv.json")
        assert inputs.changelog_file == Path("out/changelog.md")

    def test_explicit_build_file(self) -> None:
        """Test that an explicit build file overrides the output directory."""
        inputs = parse_inputs(["next-tag", "--variant", "debug", "--build-file", "b.json"])
        assert inputs.build_file_path == Path("b.json")

    def test_env_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that inputs come from environment variables."""
        monkeypatch.setenv("INPUT_COMMAND", "version-code")
        monkeypatch.setenv("INPUT_VARIANT", "release")
        monkeypatch.setenv("INPUT_SOURCE", "github")
        monkeypatch.setenv("INPUT_DEBUG", "true")
        inputs = parse_inputs([])
        assert inputs.command == "version-code"
        assert inputs.variant == "release"
        assert inputs.source == "github"
        assert inputs.debug is True

    def test_cli_overrides_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that CLI arguments override environment variables."""
        monkeypatch.setenv("INPUT_VARIANT", "release")
        assert parse_inputs(["--variant", "debug"]).variant == "debug"

    def test_missing_variant_exits(self) -> None:
        """Test that a variant is required."""
        with pytest.raises(SystemExit):
            parse_inputs([])

    def test_unknown_command_exits(self) -> None:
        """Test that unknown commands are rejected."""
        with pytest.raises(SystemExit):
            parse_inputs(["publish", "--variant", "debug"])


class TestCreateSource:
    """Tests for create_source() function."""

    def test_git_source(self) -> None:
        """Test that the git source uses the repository path."""
        with patch("tagversion.main.GitClient") as mock_client:
            create_source(CliInputs(command="last-tag", variant="debug", repo_path=Path("/repo")))
        mock_client.assert_called_once_with(Path("/repo"))

    def test_github_source(self) -> None:
        """Test that the github source gets token and repository."""
        inputs = CliInputs(command="last-tag", variant="debug", source="github", token="t", repository="o/r")
        with patch("tagversion.main.GitHubAPI") as mock_api:
            create_source(inputs)
        mock_api.assert_called_once_with(token="t", repository="o/r")


class TestHandlers:
    """Tests for the command handlers."""

    def test_last_tag_writes_build_file(self, debug_tags: MagicMock, tmp_path: Path) -> None:
        """Test that last-tag persists the resolved build."""
        inputs = CliInputs(command="last-tag", variant="debug", output_dir=tmp_path)
        outputs = handle_last_tag(debug_tags, Config(), inputs)

        assert outputs == CliOutputs(tag="v1.0.2-debug", version_code="2", version_name="v1.0.2-debug", build_number="2")
        build = read_build_file(tmp_path / "tag-build-debug.json")
        assert build.name == "v1.0.2-debug"
        assert build.message == "Sprint 2"

    def test_last_tag_without_tags_skips_build_file(self, mock_tag_source: MagicMock, tmp_path: Path) -> None:
        """Test that no build file is written when tags are unused."""
        config = parse_config({"outputs": {"default": {"useVersionsFromTag": False, "versionCode": 4}}})
        inputs = CliInputs(command="last-tag", variant="debug", output_dir=tmp_path)
        outputs = handle_last_tag(mock_tag_source, config, inputs)

        assert outputs.version_code == "4"
        assert outputs.tag == ""
        assert not (tmp_path / "tag-build-debug.json").exists()

    @pytest.mark.parametrize(("command", "expected"), [("version-code", "2"), ("version-name", "v1.0.2-debug")])
    def test_versions(
        self, debug_tags: MagicMock, capsys: pytest.CaptureFixture[str], command: str, expected: str
    ) -> None:
        """Test that version commands print the requested value."""
        handle_versions(debug_tags, Config(), CliInputs(command=command, variant="debug"))
        assert capsys.readouterr().out.strip() == expected

    def test_changelog_to_file(self, debug_tags: MagicMock, tmp_path: Path) -> None:
        """Test that the changelog is written to the changelog file."""
        config = parse_config({"changelog": {"commitMessageKey": "CHANGELOG"}})
        path = tmp_path / "notes" / "changelog.md"
        handle_changelog(debug_tags, config, CliInputs(command="changelog", variant="debug", changelog_file=path))

        assert path.read_text(encoding="utf-8") == "*Sprint 2*\n• Login screen"
        debug_tags.list_commits_between.assert_called_once_with("sha1", "sha2")

    def test_changelog_to_stdout(self, debug_tags: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that the changelog is printed without a changelog file."""
        handle_changelog(debug_tags, Config(), CliInputs(command="changelog", variant="debug"))
        assert "• CHANGELOG: Login screen" in capsys.readouterr().out

    def test_next_tag(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that next-tag reads the build file and increments the build number."""
        write_build_file(make_build(name="v1.0.41-debug", build_number=41), tmp_path / "tag-build-debug.json")
        outputs = handle_next_tag(Config(), CliInputs(command="next-tag", variant="debug", output_dir=tmp_path))

        assert outputs.tag == "v1.0.42-debug"
        assert outputs.build_number == "42"
        assert capsys.readouterr().out.strip() == "v1.0.42-debug"

    def test_apk_name(self, debug_tags: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that apk-name prints the output file name."""
        config = parse_config({"outputs": {"default": {"baseFileName": "cabinet"}}})
        handle_apk_name(debug_tags, config, CliInputs(command="apk-name", variant="debug", output_name="app.aab"))
        assert capsys.readouterr().out.strip() == "cabinet.aab"


class TestSetOutputs:
    """Tests for set_outputs() function."""

    def test_writes_github_output(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test that outputs are appended to GITHUB_OUTPUT."""
        output_file = tmp_path / "output"
        monkeypatch.setenv("GITHUB_OUTPUT", str(output_file))
        set_outputs(CliOutputs(tag="v1.0.2-debug", version_code="2", version_name="v1.0.2-debug", build_number="2"))

        content = output_file.read_text()
        assert "tag=v1.0.2-debug\n" in content
        assert "version-code=2\n" in content
        assert "build-number=2\n" in content

    def test_without_github_output(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test that nothing is written without GITHUB_OUTPUT."""
        monkeypatch.delenv("GITHUB_OUTPUT", raising=False)
        set_outputs(CliOutputs(tag="v1"))
        assert list(tmp_path.iterdir()) == []


@pytest.mark.usefixtures("clean_env")
class TestMain:
    """Tests for main() entry point."""

    def test_last_tag_end_to_end(
        self, debug_tags: MagicMock, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """Test main() resolves the tag and writes build file and outputs."""
        output_file = tmp_path / "github_output"
        monkeypatch.setenv("GITHUB_OUTPUT", str(output_file))

        with patch("tagversion.main.GitClient", return_value=debug_tags):
            main(["last-tag", "--variant", "debug", "--output-dir", str(tmp_path)])

        data = json.loads((tmp_path / "tag-build-debug.json").read_text(encoding="utf-8"))
        assert data["name"] == "v1.0.2-debug"
        assert data["buildNumber"] == 2
        assert "tag=v1.0.2-debug" in output_file.read_text()

    def test_custom_pattern_from_config(
        self, mock_tag_source: MagicMock, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test main() with a configured literal-prefixed pattern."""
        config_file = tmp_path / "tagversion.json"
        config_file.write_text(
            json.dumps(
                {
                    "outputs": {
                        "cabinetDebug": {
                            "buildTagPatternBuilderFunctions": [
                                "literal(cabinet)",
                                "separator(+)",
                                "anyBeforeDot()",
                                "buildVersion()",
                                "separator(-)",
                                "buildVariantName()",
                            ]
                        }
                    }
                }
            ),
            encoding="utf-8",
        )
        mock_tag_source.list_tags.return_value = [
            make_tag("v1.0.900-cabinetDebug", "sha900"),
            make_tag("cabinet+v1.0.323-cabinetDebug", "sha323"),
        ]

        with patch("tagversion.main.GitClient", return_value=mock_tag_source):
            main(["version-code", "--variant", "cabinetDebug", "--config", str(config_file)])

        assert capsys.readouterr().out.strip() == "323"

    def test_no_tag_without_stubs_exits(self, mock_tag_source: MagicMock, tmp_path: Path) -> None:
        """Test main() exits with status 1 when no tag is found."""
        config_file = tmp_path / "tagversion.json"
        config_file.write_text(json.dumps({"outputs": {"default": {"useStubsForTagAsFallback": False}}}))

        with patch("tagversion.main.GitClient", return_value=mock_tag_source):
            with pytest.raises(SystemExit) as exc_info:
                main(["last-tag", "--variant", "release", "--config", str(config_file), "--output-dir", str(tmp_path)])

        assert exc_info.value.code == 1
        assert not (tmp_path / "tag-build-release.json").exists()

    def test_malformed_pattern_exits(self, mock_tag_source: MagicMock, tmp_path: Path) -> None:
        """Test main() exits with status 1 for an invalid pattern."""
        config_file = tmp_path / "tagversion.json"
        config_file.write_text(json.dumps({"outputs": {"default": {"buildTagPatternBuilderFunctions": ["eval(1)"]}}}))

        with patch("tagversion.main.GitClient", return_value=mock_tag_source):
            with pytest.raises(SystemExit) as exc_info:
                main(["version-name", "--variant", "debug", "--config", str(config_file)])

        assert exc_info.value.code == 1
        mock_tag_source.list_tags.assert_not_called()

    def test_next_tag_without_build_file_exits(self, tmp_path: Path) -> None:
        """Test main() exits with status 1 when the build file is missing."""
        with pytest.raises(SystemExit) as exc_info:
            main(["next-tag", "--variant", "debug", "--output-dir", str(tmp_path)])
        assert exc_info.value.code == 1

    def test_github_source_without_token_exits(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test main() exits with status 1 when the github source has no token."""
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        monkeypatch.setenv("GITHUB_REPOSITORY", "owner/repo")
        with pytest.raises(SystemExit) as exc_info:
            main(["last-tag", "--variant", "debug", "--source", "github"])
        assert exc_info.value.code == 1

    def test_unwritable_build_file_exits(self, debug_tags: MagicMock, tmp_path: Path) -> None:
        """Test main() exits with status 1 when the build file cannot be written."""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")

        with patch("tagversion.main.GitClient", return_value=debug_tags):
            with pytest.raises(SystemExit) as exc_info:
                main(["last-tag", "--variant", "debug", "--output-dir", str(blocker / "out")])
        assert exc_info.value.code == 1

    def test_unwritable_changelog_file_exits(self, debug_tags: MagicMock, tmp_path: Path) -> None:
        """Test main() exits with status 1 when the changelog file cannot be written."""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")

        with patch("tagversion.main.GitClient", return_value=debug_tags):
            with pytest.raises(SystemExit) as exc_info:
                main(["changelog", "--variant", "debug", "--changelog-file", str(blocker / "changelog.md")])
        assert exc_info.value.code == 1

    def test_next_tag_with_configured_pattern(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test main() increments the build number located by the variant's pattern."""
        config_file = tmp_path / "tagversion.json"
        config_file.write_text(
            json.dumps(
                {
                    "outputs": {
                        "cabinetDebug": {
                            "buildTagPatternBuilderFunctions": [
                                "it.literal(cabinet5)",
                                "it.separator(+)",
                                "it.anyBeforeDot()",
                                "it.buildVersion()",
                                "it.separator(-)",
                                "it.buildVariantName()",
                            ]
                        }
                    }
                }
            ),
            encoding="utf-8",
        )
        build = make_build(name="cabinet5+v1.0.5-cabinetDebug", build_variant="cabinetDebug", build_number=5)
        write_build_file(build, tmp_path / "tag-build-cabinetDebug.json")

        main(["next-tag", "--variant", "cabinetDebug", "--config", str(config_file), "--output-dir", str(tmp_path)])

        assert capsys.readouterr().out.strip() == "cabinet5+v1.0.6-cabinetDebug"
