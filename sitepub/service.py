"""
Deployment service: the one object a host (CLI, HTTP layer) talks to.

Mutating operations (publish, rollback, preview start/stop, sync, commit)
run under the deployment lock. status, preview_status and list_tags are
read-only and never wait for it. No public method raises: failures come
back as result values with success=False and the stage that failed.
"""

import logging

from sitepub.deploy.build import PublishBranchDeployer, SiteBuilder
from sitepub.deploy.commit import CommitGateway
from sitepub.deploy.content import make_content_processor
from sitepub.deploy.locking import DeploymentLock, LockTimeout
from sitepub.deploy.preview import PreviewManager
from sitepub.deploy.publish import PublishPipeline
from sitepub.deploy.rollback import RollbackManager
from sitepub.deploy.status import get_status
from sitepub.deploy.tags import version_key
from sitepub.git.adapter import GitAdapter, Identity
from sitepub.lib.config import PublisherConfig
from sitepub.lib.constants import (
    STAGE_COMMIT,
    STAGE_FETCH,
    STAGE_LOCK,
    TAG_SOURCE_LOCAL,
    TAG_SOURCE_NONE,
    TAG_SOURCE_REMOTE,
)
from sitepub.lib.errors import SitepubError
from sitepub.lib.types import (
    DeploymentStatus,
    OperationResult,
    PreviewResult,
    PreviewStatus,
    PublishResult,
    RollbackResult,
    TagList,
)

logger = logging.getLogger(__name__)


class DeploymentService:
    """Wires the deployment components together from a PublisherConfig."""

    def __init__(self, config: PublisherConfig):
        self.config = config
        identity = Identity(name=config.user_name, email=config.user_email)
        timeouts = config.timeouts

        self.adapter = GitAdapter(
            repo_path=config.repo_path,
            remote_url=config.repo_url,
            branch=config.branch,
            token=config.token,
            identity=identity,
            network_timeout=timeouts.network,
        )
        content = make_content_processor(config.content_command, config.repo_path, timeouts.content)

        self.lock = DeploymentLock(config.state_dir, timeout=timeouts.lock)
        self.preview = PreviewManager(
            site_dir=config.site_dir,
            command=config.preview_command,
            port=config.preview_port,
            url=config.preview_url,
            content_processor=content,
        )
        self.pipeline = PublishPipeline(
            adapter=self.adapter,
            content_processor=content,
            builder=SiteBuilder(
                site_dir=config.site_dir,
                command=config.build_command,
                output_dir=config.build_output_dir,
                cache_dirs=config.build_cache_dirs,
                timeout=timeouts.build,
            ),
            deployer=PublishBranchDeployer(
                remote_url=config.publish_remote_url,
                branch=config.publish_branch,
                token=config.token,
                identity=identity,
                timeout=timeouts.network,
            ),
        )
        self.rollbacks = RollbackManager(self.adapter)
        self.commits = CommitGateway(self.adapter)

    def _locked(self, operation: str, result_cls, action, stage: str | None = None):
        try:
            with self.lock.hold(operation):
                try:
                    return action()
                except Exception as e:
                    logger.exception(f"Unexpected error during {operation}")
                    return result_cls.failed(f"Unexpected error during {operation}: {e}", stage=stage)
        except LockTimeout as e:
            logger.warning(str(e))
            return result_cls.failed(str(e), stage=STAGE_LOCK)
        except Exception as e:
            logger.exception(f"Could not run {operation}")
            return result_cls.failed(f"Could not run {operation}: {e}", stage=STAGE_LOCK)

    # Read-only

    def status(self) -> DeploymentStatus:
        return get_status(self.adapter)

    def preview_status(self) -> PreviewStatus:
        return self.preview.status()

    def list_tags(self) -> TagList:
        """
        Published tags, newest first.

        Primary: the local repository, ordered by tag creation date.
        Fallback: `git ls-remote --tags`, ordered by version because the
        remote listing carries no dates. The tier used is reported in
        TagList.source.
        """
        try:
            self.adapter.fetch_tags()
            tags = self.adapter.list_tags()
            logger.debug(f"Listed {len(tags)} tags from local repository")
            return TagList(tags=tags, source=TAG_SOURCE_LOCAL)
        except SitepubError as e:
            primary_error = e
            logger.warning(f"Local tag listing failed, falling back to remote: {e}")
        except Exception as e:
            primary_error = e
            logger.exception("Local tag listing failed, falling back to remote")

        try:
            tags = sorted(self.adapter.remote_tags(), key=version_key, reverse=True)
        except SitepubError as e:
            logger.error(f"Remote tag listing failed: {e}")
            return TagList(tags=[], source=TAG_SOURCE_NONE, message=f"Could not list tags: {e}")
        except Exception as e:
            logger.exception("Remote tag listing failed")
            return TagList(tags=[], source=TAG_SOURCE_NONE, message=f"Could not list tags: {e}")

        return TagList(
            tags=tags,
            source=TAG_SOURCE_REMOTE,
            message=f"Listed from remote (local repository unavailable: {primary_error})",
        )

    # Mutating

    def publish(self) -> PublishResult:
        return self._locked("publish", PublishResult, self.pipeline.publish)

    def rollback(self, tag: str) -> RollbackResult:
        return self._locked("rollback", RollbackResult, lambda: self.rollbacks.rollback(tag))

    def preview_start(self) -> PreviewResult:
        return self._locked("preview start", PreviewResult, self.preview.start)

    def preview_stop(self) -> PreviewResult:
        return self._locked("preview stop", PreviewResult, self.preview.stop)

    def commit(self, message: str) -> OperationResult:
        return self._locked(
            "commit", OperationResult, lambda: self.commits.commit_and_push(message),
            stage=STAGE_COMMIT,
        )

    def sync(self) -> OperationResult:
        """Clone the repository if absent, else fast-forward the branch."""
        return self._locked("sync", OperationResult, self._sync, stage=STAGE_FETCH)

    def _sync(self) -> OperationResult:
        branch = self.adapter.branch
        try:
            if self.adapter.ensure_cloned():
                return OperationResult.ok(f"Repository cloned at branch {branch}")
            self.adapter.fetch_tags()
            self.adapter.checkout(branch)
            self.adapter.pull()
        except SitepubError as e:
            logger.error(f"Sync failed: {e}")
            return OperationResult.failed(f"Sync failed: {e}", stage=e.stage or STAGE_FETCH)
        return OperationResult.ok(f"Repository synced to branch {branch}")

    def shutdown(self) -> None:
        """Stop the preview server, if any, before the host exits."""
        self.preview.shutdown()
