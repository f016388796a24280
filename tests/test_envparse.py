"""Tests for sitepub.lib.envparse module."""

import pytest

from sitepub.lib.envparse import load_env, layered_env


class TestLoadEnv:
    """Test the safe env file parser."""

    def test_basic(self, tmp_path):
        f = tmp_path / "a.env"
        f.write_text('# comment\n\nGIT_BRANCH=main\nexport PREVIEW_URL="http://localhost:3000"\n')
        assert load_env(f) == {"GIT_BRANCH": "main", "PREVIEW_URL": "http://localhost:3000"}

    def test_single_quotes(self, tmp_path):
        f = tmp_path / "a.env"
        f.write_text("BUILD_COMMAND='npm run build'\n")
        assert load_env(f)["BUILD_COMMAND"] == "npm run build"

    def test_value_may_contain_equals(self, tmp_path):
        f = tmp_path / "a.env"
        f.write_text("GIT_REPO_URL=https://example.com/r.git?a=b\n")
        assert load_env(f)["GIT_REPO_URL"] == "https://example.com/r.git?a=b"

    @pytest.mark.parametrize("value", ["`whoami`", "$(id)", "${HOME}"])
    def test_forbidden_patterns(self, tmp_path, value):
        f = tmp_path / "a.env"
        f.write_text(f"BUILD_COMMAND={value}\n")
        with pytest.raises(ValueError, match="Forbidden pattern"):
            load_env(f)

    def test_invalid_key(self, tmp_path):
        f = tmp_path / "a.env"
        f.write_text("lower=1\n")
        with pytest.raises(ValueError, match="Invalid key"):
            load_env(f)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_env(tmp_path / "missing.env")


class TestLayeredEnv:
    """Test file plus environment layering."""

    def test_environment_overrides_file(self, tmp_path):
        f = tmp_path / "a.env"
        f.write_text("GIT_BRANCH=main\nPREVIEW_PORT=3000\n")
        merged = layered_env(["GIT_BRANCH", "PREVIEW_PORT"], f, {"GIT_BRANCH": "dev"})
        assert merged == {"GIT_BRANCH": "dev", "PREVIEW_PORT": "3000"}

    def test_empty_values_are_unset(self, tmp_path):
        f = tmp_path / "a.env"
        f.write_text("SITE_DIR=\n")
        assert layered_env(["SITE_DIR"], f, {"GIT_BRANCH": ""}) == {}

    def test_unlisted_keys_dropped(self):
        assert layered_env(["GIT_BRANCH"], None, {"PATH": "/bin", "GIT_BRANCH": "main"}) == {
            "GIT_BRANCH": "main"
        }
