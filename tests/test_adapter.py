"""Tests for sitepub.git.adapter module."""

import pytest
from pathlib import Path
from unittest.mock import patch

from sitepub.git.adapter import GitAdapter, Identity
from sitepub.git.runner import GitResult
from sitepub.lib.errors import NetworkOperationError, RepositoryStateError


def ok(stdout=""):
    return GitResult(returncode=0, stdout=stdout, stderr="")


def failed(stderr):
    return GitResult(returncode=128, stdout="", stderr=stderr)


@pytest.fixture
def repo(tmp_path):
    path = tmp_path / "content"
    (path / ".git").mkdir(parents=True)
    return path


@pytest.fixture
def adapter(repo):
    return GitAdapter(
        repo_path=repo,
        remote_url="https://github.com/acme/site.git",
        branch="main",
        token="s3cret",
    )


class TestIdentity:
    """Test committer identity environment."""

    def test_env_sets_author_and_committer(self):
        env = Identity(name="Publisher", email="pub@example.com").env()
        assert env["GIT_AUTHOR_NAME"] == "Publisher"
        assert env["GIT_COMMITTER_EMAIL"] == "pub@example.com"


class TestRepositoryPresence:
    """Operations on a missing repository raise RepositoryStateError."""

    def test_list_tags_without_repo(self, tmp_path):
        adapter = GitAdapter(tmp_path / "missing", "https://github.com/a/b.git", "main")
        with pytest.raises(RepositoryStateError) as exc:
            adapter.list_tags()
        assert exc.value.stage == "fetch"

    def test_fetch_without_repo(self, tmp_path):
        adapter = GitAdapter(tmp_path / "missing", "https://github.com/a/b.git", "main")
        with pytest.raises(RepositoryStateError):
            adapter.fetch_tags()

    def test_is_cloned(self, adapter):
        assert adapter.is_cloned()


class TestNetworkErrors:
    """Network failures become NetworkOperationError with the token redacted."""

    @patch("sitepub.git.adapter.git_remote.fetch_tags")
    def test_fetch_failure(self, mock_fetch, adapter):
        mock_fetch.return_value = failed(
            "fatal: unable to access 'https://s3cret@github.com/acme/site.git/'"
        )
        with pytest.raises(NetworkOperationError) as exc:
            adapter.fetch_tags()
        assert "s3cret" not in str(exc.value)
        assert "***@github.com" in str(exc.value)
        assert exc.value.stage == "fetch"

    @patch("sitepub.git.adapter.git_remote.fetch_tags")
    def test_fetch_uses_authenticated_url(self, mock_fetch, adapter):
        mock_fetch.return_value = ok()
        adapter.fetch_tags()
        assert mock_fetch.call_args[0][1] == "https://s3cret@github.com/acme/site.git"

    @patch("sitepub.git.adapter.git_remote.push_tags")
    def test_push_tags_failure_is_tag_stage(self, mock_push, adapter):
        mock_push.return_value = failed("rejected")
        with pytest.raises(NetworkOperationError) as exc:
            adapter.push_tags()
        assert exc.value.stage == "tag"

    @patch("sitepub.git.adapter.git_remote.ls_remote_tags")
    def test_remote_tags(self, mock_ls, adapter):
        mock_ls.return_value = ok("a\trefs/tags/v1.0.0\nb\trefs/tags/v1.0.0^{}\n")
        assert adapter.remote_tags() == ["v1.0.0"]
        assert adapter.remote_tag_exists("v1.0.0")
        assert not adapter.remote_tag_exists("v9.9.9")


class TestClone:
    """Test clone preconditions."""

    def test_refuses_non_empty_directory(self, tmp_path):
        target = tmp_path / "content"
        target.mkdir()
        (target / "stray.txt").write_text("x")
        adapter = GitAdapter(target, "https://github.com/a/b.git", "main")
        with pytest.raises(RepositoryStateError) as exc:
            adapter.clone()
        assert exc.value.stage == "clone"

    @patch("sitepub.git.adapter.run_git")
    @patch("sitepub.git.adapter.git_remote.clone")
    def test_resets_origin_to_clean_url(self, mock_clone, mock_run, tmp_path):
        mock_clone.return_value = ok()
        mock_run.return_value = ok()
        adapter = GitAdapter(tmp_path / "content", "https://github.com/a/b.git", "main", token="t0k")
        adapter.clone()
        assert mock_clone.call_args[0][0] == "https://t0k@github.com/a/b.git"
        assert mock_run.call_args[0][0] == ["remote", "set-url", "origin", "https://github.com/a/b.git"]


class TestLocalOperations:
    """Test local tag, diff and commit handling."""

    @patch("sitepub.git.adapter.git_tags.list_tags")
    def test_list_tags(self, mock_list, adapter):
        mock_list.return_value = ok("v1.0.2\nv1.0.1\n")
        assert adapter.list_tags(merged="HEAD") == ["v1.0.2", "v1.0.1"]
        assert mock_list.call_args[0][1] == "HEAD"

    @patch("sitepub.git.adapter.git_diff.get_shortstat")
    def test_diff_failure_is_inspect_stage(self, mock_diff, adapter):
        mock_diff.return_value = failed("bad revision")
        with pytest.raises(RepositoryStateError) as exc:
            adapter.diff_summary("v1.0.0..HEAD")
        assert exc.value.stage == "inspect"

    @patch("sitepub.git.adapter.git_commit.has_staged_changes", return_value=False)
    @patch("sitepub.git.adapter.git_commit.stage_all")
    @patch("sitepub.git.adapter.git_commit.commit")
    def test_commit_nothing_staged(self, mock_commit, mock_stage, _staged, adapter):
        mock_stage.return_value = ok()
        assert adapter.commit("Update") is False
        mock_commit.assert_not_called()

    @patch("sitepub.git.adapter.git_commit.has_staged_changes", return_value=True)
    @patch("sitepub.git.adapter.git_commit.stage_all")
    @patch("sitepub.git.adapter.git_commit.commit")
    def test_commit_uses_identity(self, mock_commit, mock_stage, _staged, adapter):
        mock_stage.return_value = ok()
        mock_commit.return_value = ok()
        assert adapter.commit("Update") is True
        assert mock_commit.call_args[1]["env"]["GIT_AUTHOR_NAME"] == "Deploy Bot"

    @patch("sitepub.git.adapter.git_tags.delete_tag")
    def test_discard_local_tag_tolerates_failure(self, mock_delete, adapter, caplog):
        mock_delete.return_value = failed("tag not found")
        adapter.discard_local_tag("v1.0.3")
        assert "Could not remove unpushed tag v1.0.3" in caplog.text
