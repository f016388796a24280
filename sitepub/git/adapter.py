"""
Repository-bound git adapter.

Wraps the plain git functions (which return GitResult) and turns failures
into typed errors, so the deployment code never has to inspect exit codes.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from sitepub.git import commit as git_commit
from sitepub.git import diff as git_diff
from sitepub.git import remote as git_remote
from sitepub.git import tags as git_tags
from sitepub.git.diff import DiffSummary
from sitepub.git.runner import GitResult, run_git
from sitepub.lib.errors import (
    NetworkOperationError,
    RepositoryStateError,
    SitepubError,
)

logger = logging.getLogger(__name__)


@dataclass
class Identity:
    """Committer identity used for tags, deploy commits and content commits."""
    name: str = "Deploy Bot"
    email: str = "bot@example.com"

    def env(self) -> dict[str, str]:
        return {
            "GIT_AUTHOR_NAME": self.name,
            "GIT_AUTHOR_EMAIL": self.email,
            "GIT_COMMITTER_NAME": self.name,
            "GIT_COMMITTER_EMAIL": self.email,
        }


class GitAdapter:
    """Git operations against one local working copy of one remote."""

    def __init__(
        self,
        repo_path: Path,
        remote_url: str,
        branch: str,
        token: str = "",
        identity: Identity | None = None,
        network_timeout: int = git_remote.NETWORK_TIMEOUT,
    ):
        self.repo_path = Path(repo_path)
        self.remote_url = git_remote.normalize_url(remote_url)
        self.branch = branch
        self.token = token
        self.identity = identity or Identity()
        self.network_timeout = network_timeout

    @property
    def auth_url(self) -> str:
        return git_remote.authenticated_url(self.remote_url, self.token)

    def is_cloned(self) -> bool:
        return (self.repo_path / ".git").exists()

    def require_repository(self) -> None:
        if not self.is_cloned():
            raise RepositoryStateError(
                f"Repository is not initialized at {self.repo_path}", stage="fetch"
            )

    def _check(self, result: GitResult, what: str, stage: str,
               error_cls: type[SitepubError] = NetworkOperationError) -> GitResult:
        if not result.success:
            detail = git_remote.redact(result.error_text, self.token)
            logger.error(f"git {what} failed: {detail}")
            raise error_cls(f"git {what} failed: {detail}", stage=stage)
        return result

    # Remote operations

    def clone(self) -> None:
        """Clone the remote into repo_path on the configured branch."""
        if self.repo_path.exists() and any(self.repo_path.iterdir()):
            raise RepositoryStateError(
                f"Cannot clone into non-empty directory {self.repo_path}", stage="clone"
            )
        self.repo_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Cloning {self.remote_url} ({self.branch}) into {self.repo_path}")
        result = git_remote.clone(
            self.auth_url, self.repo_path, branch=self.branch,
            timeout=self.network_timeout,
        )
        self._check(result, "clone", "clone")
        # Keep the token out of .git/config
        run_git(["remote", "set-url", "origin", self.remote_url], self.repo_path)

    def ensure_cloned(self) -> bool:
        """Clone if the repository is absent. Returns True if a clone happened."""
        if self.is_cloned():
            return False
        self.clone()
        return True

    def fetch_tags(self) -> None:
        self.require_repository()
        result = git_remote.fetch_tags(self.repo_path, self.auth_url, timeout=self.network_timeout)
        self._check(result, "fetch --tags", "fetch")

    def pull(self) -> None:
        self.require_repository()
        result = git_remote.pull_ff_only(
            self.repo_path, self.auth_url, self.branch, timeout=self.network_timeout
        )
        self._check(result, "pull", "fetch")

    def push(self) -> None:
        """Push HEAD to the configured branch."""
        self.require_repository()
        result = git_remote.push(
            self.repo_path, self.auth_url, f"HEAD:refs/heads/{self.branch}",
            timeout=self.network_timeout,
        )
        self._check(result, "push", "push")

    def push_tags(self) -> None:
        self.require_repository()
        result = git_remote.push_tags(self.repo_path, self.auth_url, timeout=self.network_timeout)
        self._check(result, "push --tags", "tag")

    def remote_tags(self) -> list[str]:
        """Enumerate tags on the remote without touching the local repository."""
        result = git_remote.ls_remote_tags(self.auth_url, timeout=self.network_timeout)
        self._check(result, "ls-remote --tags", "fetch")
        return git_remote.parse_ls_remote_tags(result.stdout)

    def remote_tag_exists(self, tag: str) -> bool:
        return tag in self.remote_tags()

    # Local operations

    def list_tags(self, merged: str | None = None) -> list[str]:
        """Local tags, newest first by creation date, optionally only those reachable from merged."""
        self.require_repository()
        result = self._check(git_tags.list_tags(self.repo_path, merged), "tag --list", "fetch",
                             RepositoryStateError)
        return git_tags.parse_tag_list(result.stdout)

    def has_tag(self, tag: str) -> bool:
        self.require_repository()
        return git_tags.tag_exists(self.repo_path, tag)

    def diff_summary(self, ref_range: str) -> DiffSummary:
        self.require_repository()
        result = self._check(git_diff.get_shortstat(self.repo_path, ref_range),
                             f"diff {ref_range}", "inspect", RepositoryStateError)
        return git_diff.parse_shortstat(result.stdout)

    def checkout(self, ref: str) -> None:
        self.require_repository()
        self._check(git_commit.checkout(self.repo_path, ref), f"checkout {ref}",
                    "checkout", RepositoryStateError)

    def add_annotated_tag(self, tag: str, message: str) -> None:
        self.require_repository()
        self._check(
            git_tags.add_annotated_tag(self.repo_path, tag, message, env=self.identity.env()),
            f"tag {tag}", "tag", RepositoryStateError,
        )

    def discard_local_tag(self, tag: str) -> None:
        """Remove a tag that was created locally but could not be pushed."""
        result = git_tags.delete_tag(self.repo_path, tag)
        if not result.success:
            logger.warning(f"Could not remove unpushed tag {tag}: {result.error_text}")

    def commit(self, message: str) -> bool:
        """Stage everything and commit. Returns False if there was nothing to commit."""
        self.require_repository()
        self._check(git_commit.stage_all(self.repo_path), "add", "commit", RepositoryStateError)
        if not git_commit.has_staged_changes(self.repo_path):
            return False
        self._check(
            git_commit.commit(self.repo_path, message, env=self.identity.env()),
            "commit", "commit", RepositoryStateError,
        )
        return True

    def head_sha(self) -> str | None:
        self.require_repository()
        return git_commit.get_commit_sha(self.repo_path)
