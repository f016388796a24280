"""Shared fixtures: throwaway git remotes and configs for integration tests."""

import os
import subprocess
from pathlib import Path

import pytest

from sitepub.lib.config import PublisherConfig, Timeouts

IDENTITY_ENV = {
    "GIT_AUTHOR_NAME": "Test Author",
    "GIT_AUTHOR_EMAIL": "author@example.com",
    "GIT_COMMITTER_NAME": "Test Author",
    "GIT_COMMITTER_EMAIL": "author@example.com",
}


def git(*args, cwd: Path | None = None) -> str:
    """Run git for test setup, failing loudly."""
    env = dict(os.environ)
    env.update(IDENTITY_ENV)
    cmd = ["git"] + (["-C", str(cwd)] if cwd else []) + list(args)
    result = subprocess.run(cmd, capture_output=True, text=True, env=env)
    assert result.returncode == 0, f"{cmd}: {result.stderr}"
    return result.stdout


@pytest.fixture
def git_cli():
    """The setup helper, for tests that inspect repositories directly."""
    return git


@pytest.fixture
def remote_repo(tmp_path) -> Path:
    """Bare repository with one commit on main."""
    remote = tmp_path / "remote.git"
    git("init", "--bare", "--quiet", str(remote))
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=remote)

    seed = tmp_path / "seed"
    seed.mkdir()
    git("init", "--quiet", cwd=seed)
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=seed)
    (seed / "index.mdx").write_text("---\ntitle: Home\n---\nHello\n")
    git("add", "-A", cwd=seed)
    git("commit", "--quiet", "-m", "Initial content", cwd=seed)
    git("push", "--quiet", str(remote), "main", cwd=seed)
    return remote


@pytest.fixture
def site_dir(tmp_path) -> Path:
    site = tmp_path / "site"
    site.mkdir()
    return site


@pytest.fixture
def config(tmp_path, remote_repo, site_dir) -> PublisherConfig:
    """Config pointing at the local bare remote, with a shell build."""
    return PublisherConfig(
        repo_path=tmp_path / "content",
        repo_url=str(remote_repo),
        branch="main",
        token="test-token",
        preview_port=3999,
        preview_url="http://localhost:3999",
        site_dir=site_dir,
        build_command='sh -c "mkdir -p out && echo built > out/index.html"',
        build_output_dir="out",
        build_cache_dirs=[".next"],
        preview_command="sleep 30",
        state_dir=tmp_path / "state",
        timeouts=Timeouts(network=60, build=60, content=60, lock=5),
    )
