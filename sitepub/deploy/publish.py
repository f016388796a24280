"""
Publish pipeline.

    fetch -> inspect -> content -> build -> deploy -> tag

Each stage depends on the previous one succeeding. Tagging is the last
stage, so a tag never points at a commit whose build or deploy failed.
"""

import logging

from sitepub.deploy.build import PublishBranchDeployer, SiteBuilder
from sitepub.deploy.content import ContentProcessor
from sitepub.deploy.status import inspect_changes
from sitepub.deploy.tags import next_tag
from sitepub.git.adapter import GitAdapter
from sitepub.lib.constants import (
    STAGE_BUILD,
    STAGE_CONTENT,
    STAGE_DEPLOY,
    STAGE_FETCH,
    STAGE_INSPECT,
    STAGE_TAG,
)
from sitepub.lib.errors import SitepubError
from sitepub.lib.types import PublishResult

logger = logging.getLogger(__name__)


class PublishPipeline:
    """Builds, deploys and (when content changed) tags the repository."""

    def __init__(
        self,
        adapter: GitAdapter,
        content_processor: ContentProcessor,
        builder: SiteBuilder,
        deployer: PublishBranchDeployer,
    ):
        self.adapter = adapter
        self.content_processor = content_processor
        self.builder = builder
        self.deployer = deployer

    def publish(self) -> PublishResult:
        """Run every stage; report the first failure with its stage name."""
        stage = STAGE_FETCH
        try:
            logger.info("Publish: fetching tags")
            self.adapter.ensure_cloned()
            self.adapter.fetch_tags()

            stage = STAGE_INSPECT
            current_tag, has_changes = inspect_changes(self.adapter)
            logger.info(f"Publish: current tag {current_tag}, changes: {has_changes}")

            stage = STAGE_CONTENT
            self.content_processor.process()

            stage = STAGE_BUILD
            build_dir = self.builder.build()

            stage = STAGE_DEPLOY
            self.deployer.deploy(build_dir)

            stage = STAGE_TAG
            if not has_changes:
                return PublishResult.ok(
                    f"Site published (no content changes, using existing tag {current_tag})",
                    tag=current_tag,
                )
            tag = self._create_tag()
            return PublishResult.ok(f"Site published with NEW content tag {tag}", tag=tag)

        except SitepubError as e:
            logger.error(f"Publish failed at {stage} stage: {e}")
            return PublishResult.failed(
                f"Publish failed at {stage} stage: {e}", stage=stage
            )
        except Exception as e:
            logger.exception(f"Publish failed at {stage} stage")
            return PublishResult.failed(f"Publish failed at {stage} stage: {e}", stage=stage)

    def _create_tag(self) -> str:
        # list_tags() is newest first; the sequencer wants creation order
        existing = list(reversed(self.adapter.list_tags()))
        tag = next_tag(existing)
        self.adapter.add_annotated_tag(tag, f"Release {tag}")
        try:
            self.adapter.push_tags()
        except SitepubError:
            self.adapter.discard_local_tag(tag)
            raise
        logger.info(f"Tag {tag} created and pushed")
        return tag
