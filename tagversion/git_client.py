# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Local git repository tag source.

Runs the ``git`` executable in a working tree. Tags are listed oldest first
by creation date; annotated tags are peeled to the commit they point to.

References:
    - git for-each-ref: https://git-scm.com/docs/git-for-each-ref
    - git log: https://git-scm.com/docs/git-log
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from tagversion.errors import GitError
from tagversion.tags import Commit, TagRef

logger = logging.getLogger(__name__)

# Field and record separators for machine-readable output
FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"

TAG_FORMAT = FIELD_SEP.join(["%(refname)", "%(objectname)", "%(*objectname)", "%(contents)"]) + RECORD_SEP
TAG_REF_PREFIX = "refs/tags/"
LOG_FORMAT = f"%H{FIELD_SEP}%B{RECORD_SEP}"


class GitClient:
    """Tag source backed by a local git working tree."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    def _run(self, args: list[str]) -> str:
        full_cmd = ["git", *args]
        logger.debug("Executing git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise GitError(f"Failed to run git: {e}") from e

        if result.returncode != 0:
            logger.error("Git command failed: %s: %s", " ".join(full_cmd), result.stderr.strip())
            raise GitError(result.stderr.strip() or result.stdout.strip() or f"git exited with {result.returncode}")
        return result.stdout

    @staticmethod
    def _records(output: str) -> list[list[str]]:
        return [record.lstrip("\n").split(FIELD_SEP) for record in output.split(RECORD_SEP) if record.strip()]

    def list_tags(self) -> list[TagRef]:
        """List tags, oldest first, with target commits and annotation messages.

        Lightweight tags have an empty message.

        Raises:
            GitError: If git fails.
        """
        output = self._run(["for-each-ref", "--sort=creatordate", f"--format={TAG_FORMAT}", "refs/tags"])
        tags = []
        for order, fields in enumerate(self._records(output)):
            refname, object_sha, peeled_sha, contents = (fields + ["", "", "", ""])[:4]
            # %(refname:short) is "tags/<name>" when a branch has the same name
            name = refname[len(TAG_REF_PREFIX) :] if refname.startswith(TAG_REF_PREFIX) else refname
            annotated = bool(peeled_sha)
            tags.append(
                TagRef(
                    name=name,
                    commit_sha=peeled_sha if annotated else object_sha,
                    message=contents.strip() if annotated else "",
                    creation_order=order,
                )
            )
        logger.debug("Listed %d tags in %s", len(tags), self.repo_root)
        return tags

    def list_commits_between(self, from_exclusive: str | None, to_inclusive: str) -> list[Commit]:
        """List commits after ``from_exclusive`` up to ``to_inclusive``, oldest first.

        Raises:
            GitError: If git fails.
        """
        revision = f"{from_exclusive}..{to_inclusive}" if from_exclusive else to_inclusive
        output = self._run(["log", "--reverse", f"--format={LOG_FORMAT}", revision])
        commits = []
        for fields in self._records(output):
            sha, message = (fields + [""])[:2]
            commits.append(Commit(sha=sha.strip(), message=message.strip()))
        return commits
