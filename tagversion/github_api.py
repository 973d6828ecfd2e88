# Copyright (c) 2026 Mark Ferrell. MIT License.
"""GitHub API tag source.

References:
    - GitHub REST API: https://docs.github.com/en/rest
    - PyGithub Documentation: https://pygithub.readthedocs.io/
"""

from __future__ import annotations

import logging
import os

from github import Github
from github.GithubException import GithubException

from tagversion.errors import GitError
from tagversion.tags import Commit, TagRef

logger = logging.getLogger(__name__)

TAG_REF_PREFIX = "refs/tags/"


class GitHubAPI:
    """Wrapper around PyGithub exposing a repository as a tag source.

    Handles authentication via token input, defaulting to GITHUB_TOKEN
    environment variable if not provided.

    References:
        - Authentication: https://docs.github.com/en/rest/authentication
    """

    def __init__(self, token: str | None = None, repository: str | None = None) -> None:
        """Initialize the GitHub API client.

        Args:
            token: GitHub token for authentication. Defaults to GITHUB_TOKEN env var.
            repository: Repository in 'owner/repo' format. Defaults to GITHUB_REPOSITORY env var.
        """
        self._token = token or os.environ.get("GITHUB_TOKEN", "")
        self._repository = repository or os.environ.get("GITHUB_REPOSITORY", "")

        if not self._token:
            raise ValueError("GitHub token is required. Set GITHUB_TOKEN or pass token parameter.")
        if not self._repository:
            raise ValueError("Repository is required. Set GITHUB_REPOSITORY or pass repository parameter.")

        self._github = Github(self._token)
        self._repo = self._github.get_repo(self._repository)

    def list_tags(self) -> list[TagRef]:
        """List all tags with their target commits and annotation messages.

        Annotated tags are dereferenced to the commit they point to.
        GitHub does not report tag creation time, so ``creation_order`` is
        the position in the API listing.

        Raises:
            GitError: If the tags cannot be listed.

        References:
            - List matching references: https://docs.github.com/en/rest/git/refs#list-matching-references
            - Get a tag: https://docs.github.com/en/rest/git/tags#get-a-tag
        """
        try:
            refs = list(self._repo.get_git_matching_refs("tags/"))
            tags = []
            for index, ref in enumerate(refs):
                name = ref.ref[len(TAG_REF_PREFIX) :] if ref.ref.startswith(TAG_REF_PREFIX) else ref.ref
                commit_sha = ref.object.sha
                message = ""
                if ref.object.type == "tag":
                    tag_obj = self._repo.get_git_tag(ref.object.sha)
                    commit_sha = tag_obj.object.sha
                    message = (tag_obj.message or "").strip()
                tags.append(TagRef(name=name, commit_sha=commit_sha, message=message, creation_order=index))
        except GithubException as e:
            raise GitError(f"Failed to list tags of {self._repository}: {e}") from e

        logger.debug("Listed %d tags from %s", len(tags), self._repository)
        return tags

    def list_commits_between(self, from_exclusive: str | None, to_inclusive: str) -> list[Commit]:
        """List commits after ``from_exclusive`` up to ``to_inclusive``, oldest first.

        Args:
            from_exclusive: Base commit SHA, or None for the whole history.
            to_inclusive: Head commit SHA.

        Raises:
            GitError: If the commits cannot be listed.

        References:
            - Compare two commits: https://docs.github.com/en/rest/commits/commits#compare-two-commits
            - List commits: https://docs.github.com/en/rest/commits/commits#list-commits
        """
        try:
            if from_exclusive is None:
                commits = list(reversed(list(self._repo.get_commits(sha=to_inclusive))))
            else:
                commits = list(self._repo.compare(from_exclusive, to_inclusive).commits)
        except GithubException as e:
            raise GitError(f"Failed to list commits {from_exclusive}..{to_inclusive}: {e}") from e

        return [Commit(sha=commit.sha, message=commit.commit.message) for commit in commits]
