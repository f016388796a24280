"""Tests for sitepub.deploy.publish module."""

import pytest
from pathlib import Path
from unittest.mock import MagicMock

from sitepub.deploy.publish import PublishPipeline
from sitepub.git.diff import DiffSummary
from sitepub.lib.errors import (
    BuildError,
    ContentProcessingError,
    NetworkOperationError,
)


@pytest.fixture
def calls():
    """Shared call log so stage ordering can be asserted."""
    return []


@pytest.fixture
def adapter(calls):
    adapter = MagicMock()
    adapter.list_tags.return_value = ["v1.0.1", "v1.0.0"]
    adapter.diff_summary.return_value = DiffSummary(changed=1, insertions=3)
    adapter.fetch_tags.side_effect = lambda: calls.append("fetch")
    adapter.add_annotated_tag.side_effect = lambda tag, msg: calls.append(f"tag {tag}")
    adapter.push_tags.side_effect = lambda: calls.append("push tags")
    return adapter


@pytest.fixture
def content(calls):
    content = MagicMock()
    content.process.side_effect = lambda: calls.append("content")
    return content


@pytest.fixture
def builder(calls):
    builder = MagicMock()

    def build():
        calls.append("build")
        return Path("/site/out")

    builder.build.side_effect = build
    return builder


@pytest.fixture
def deployer(calls):
    deployer = MagicMock()
    deployer.deploy.side_effect = lambda d: calls.append("deploy")
    return deployer


@pytest.fixture
def pipeline(adapter, content, builder, deployer):
    return PublishPipeline(adapter, content, builder, deployer)


class TestPublishSuccess:
    """Successful publishes."""

    def test_creates_next_tag_last(self, pipeline, calls):
        result = pipeline.publish()
        assert result.success
        assert result.tag == "v1.0.2"
        assert result.message == "Site published with NEW content tag v1.0.2"
        assert calls == ["fetch", "content", "build", "deploy", "tag v1.0.2", "push tags"]

    def test_sequencer_sees_creation_order(self, pipeline, adapter):
        # Newest first from git; v0.9.0 is the newest even though lower
        adapter.list_tags.return_value = ["v0.9.0", "v1.0.1"]
        result = pipeline.publish()
        assert result.tag == "v0.9.1"

    def test_first_publish(self, pipeline, adapter):
        adapter.list_tags.return_value = []
        result = pipeline.publish()
        assert result.tag == "v1.0.0"
        adapter.diff_summary.assert_not_called()

    def test_no_changes_reuses_existing_tag(self, pipeline, adapter, deployer, calls):
        adapter.diff_summary.return_value = DiffSummary()
        result = pipeline.publish()
        assert result.success
        assert result.tag == "v1.0.1"
        assert result.message == "Site published (no content changes, using existing tag v1.0.1)"
        deployer.deploy.assert_called_once_with(Path("/site/out"))
        adapter.add_annotated_tag.assert_not_called()
        adapter.push_tags.assert_not_called()

    def test_clones_when_missing(self, pipeline, adapter):
        pipeline.publish()
        adapter.ensure_cloned.assert_called_once()


class TestPublishFailures:
    """Each failing stage stops the pipeline and no tag is created."""

    def test_fetch_failure(self, pipeline, adapter, builder):
        adapter.fetch_tags.side_effect = NetworkOperationError("git fetch --tags failed: timeout")
        result = pipeline.publish()
        assert not result.success
        assert result.stage == "fetch"
        assert result.message == "Publish failed at fetch stage: git fetch --tags failed: timeout"
        builder.build.assert_not_called()

    def test_content_failure(self, pipeline, content, builder, adapter):
        content.process.side_effect = ContentProcessingError("bad front matter")
        result = pipeline.publish()
        assert result.stage == "content"
        builder.build.assert_not_called()
        adapter.add_annotated_tag.assert_not_called()

    def test_build_failure_creates_no_tag(self, pipeline, builder, deployer, adapter):
        builder.build.side_effect = BuildError("Build failed (exit 1): boom")
        result = pipeline.publish()
        assert not result.success
        assert result.stage == "build"
        assert "Build failed (exit 1): boom" in result.message
        deployer.deploy.assert_not_called()
        adapter.add_annotated_tag.assert_not_called()

    def test_deploy_failure_creates_no_tag(self, pipeline, deployer, adapter):
        deployer.deploy.side_effect = NetworkOperationError("Deploy failed at git push --force")
        result = pipeline.publish()
        assert result.stage == "deploy"
        adapter.add_annotated_tag.assert_not_called()

    def test_tag_push_failure_discards_local_tag(self, pipeline, adapter):
        adapter.push_tags.side_effect = NetworkOperationError("rejected", stage="tag")
        result = pipeline.publish()
        assert not result.success
        assert result.stage == "tag"
        adapter.discard_local_tag.assert_called_once_with("v1.0.2")

    def test_malformed_latest_tag(self, pipeline, adapter):
        adapter.list_tags.return_value = ["nightly"]
        result = pipeline.publish()
        assert result.stage == "tag"
        assert "does not match" in result.message

    def test_unexpected_exception_is_reported(self, pipeline, builder):
        builder.build.side_effect = RuntimeError("disk full")
        result = pipeline.publish()
        assert not result.success
        assert result.stage == "build"
        assert result.message == "Publish failed at build stage: disk full"
