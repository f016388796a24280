"""
Static site build and publish-branch deploy.

The build always starts from scratch: the output directory and every
configured cache directory are deleted first. The deploy turns a temporary
copy of the output directory into a throwaway repository and force-pushes
it as the publish branch, which only ever holds the latest build.
"""

import logging
import os
import shlex
import shutil
import subprocess
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from sitepub.git import commit as git_commit
from sitepub.git import remote as git_remote
from sitepub.git.adapter import Identity
from sitepub.git.runner import GitResult
from sitepub.lib.constants import STAGE_BUILD, STAGE_DEPLOY
from sitepub.lib.errors import BuildError, NetworkOperationError

logger = logging.getLogger(__name__)

# Last lines of build output included in a BuildError message
BUILD_ERROR_TAIL_LINES = 20


class SiteBuilder:
    """Runs the external build tool in site_dir."""

    def __init__(
        self,
        site_dir: Path,
        command: str,
        output_dir: str = "out",
        cache_dirs: list[str] | None = None,
        timeout: int = 1800,
        environment: str = "production",
    ):
        self.site_dir = Path(site_dir)
        self.argv = shlex.split(command)
        self.output_dir = self.site_dir / output_dir
        self.cache_dirs = [self.site_dir / d for d in (cache_dirs or [])]
        self.timeout = timeout
        self.environment = environment

    def clean(self) -> None:
        """Remove the output directory and stale build caches."""
        for path in [self.output_dir] + self.cache_dirs:
            if path.exists():
                logger.info(f"Removing {path}")
                shutil.rmtree(path)

    def build(self) -> Path:
        """
        Clean, run the build command and return the output directory.

        Raises:
            BuildError: command failed, timed out, or produced no output
        """
        self.clean()

        logger.info(f"Building site ({self.environment}): {shlex.join(self.argv)}")
        env = dict(os.environ)
        env["DEPLOY_ENV"] = self.environment
        try:
            result = subprocess.run(
                self.argv,
                cwd=str(self.site_dir),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=env,
            )
        except subprocess.TimeoutExpired:
            raise BuildError(f"Build timed out after {self.timeout}s", stage=STAGE_BUILD) from None
        except OSError as e:
            raise BuildError(f"Could not run build command: {e}", stage=STAGE_BUILD) from None

        for line in result.stdout.splitlines():
            logger.debug(f"[build] {line}")

        if result.returncode != 0:
            output = (result.stderr or result.stdout).strip().splitlines()
            tail = "\n".join(output[-BUILD_ERROR_TAIL_LINES:])
            raise BuildError(
                f"Build failed (exit {result.returncode}): {tail}", stage=STAGE_BUILD
            )

        if not self.output_dir.is_dir():
            raise BuildError(
                f"Build failed: output directory {self.output_dir} not found",
                stage=STAGE_BUILD,
            )

        # Disable Jekyll on GitHub Pages so _next/ assets are served
        (self.output_dir / ".nojekyll").write_text("")
        logger.info(f"Build finished: {self.output_dir}")
        return self.output_dir


class PublishBranchDeployer:
    """Commits a build output wholesale and force-pushes it to the publish branch."""

    def __init__(
        self,
        remote_url: str,
        branch: str = "gh-pages",
        token: str = "",
        identity: Identity | None = None,
        timeout: int = git_remote.NETWORK_TIMEOUT,
    ):
        self.remote_url = git_remote.normalize_url(remote_url)
        self.branch = branch
        self.token = token
        self.identity = identity or Identity()
        self.timeout = timeout

    def _check(self, result: GitResult, what: str) -> None:
        if not result.success:
            detail = git_remote.redact(result.error_text, self.token)
            raise NetworkOperationError(f"Deploy failed at git {what}: {detail}", stage=STAGE_DEPLOY)

    def deploy(self, build_dir: Path) -> None:
        """
        Push build_dir as the sole content of the publish branch.

        The throwaway repository lives in a temporary copy, so build_dir
        never gains a .git of its own (it may sit inside the content
        repository).

        Raises:
            NetworkOperationError: any git step failed
        """
        build_dir = Path(build_dir)
        logger.info(f"Deploying {build_dir} to {self.branch}")

        with tempfile.TemporaryDirectory(prefix="sitepub-deploy-") as tmpdir:
            worktree = Path(tmpdir) / "site"
            shutil.copytree(build_dir, worktree, ignore=shutil.ignore_patterns(".git"))
            self._push_worktree(worktree)
        logger.info(f"Site deployed to {self.branch}")

    def _push_worktree(self, worktree: Path) -> None:
        env = self.identity.env()
        self._check(git_commit.init(worktree), "init")
        self._check(git_commit.set_head_branch(worktree, self.branch), "symbolic-ref")
        self._check(git_commit.stage_all(worktree), "add")
        stamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        self._check(
            git_commit.commit(worktree, f"Deploy site - {stamp}", env=env, allow_empty=True),
            "commit",
        )
        url = git_remote.authenticated_url(self.remote_url, self.token)
        self._check(
            git_remote.push(worktree, url, f"HEAD:refs/heads/{self.branch}",
                            force=True, timeout=self.timeout),
            "push --force",
        )
