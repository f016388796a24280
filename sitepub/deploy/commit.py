"""
Commit gateway for the content layer.

Content edits land in the working copy through the CRUD layer, which then
calls commit_and_push() so that status and publish can see them in the
repository history. The publish pipeline itself never commits source
content.
"""

import logging

from sitepub.git.adapter import GitAdapter
from sitepub.lib.constants import STAGE_COMMIT
from sitepub.lib.errors import SitepubError
from sitepub.lib.types import OperationResult

logger = logging.getLogger(__name__)


class CommitGateway:
    """Commits everything in the working copy and pushes it to the branch."""

    def __init__(self, adapter: GitAdapter):
        self.adapter = adapter

    def commit_and_push(self, message: str) -> OperationResult:
        message = (message or "").strip()
        if not message:
            return OperationResult.failed("Commit message is required", stage=STAGE_COMMIT)

        try:
            if not self.adapter.commit(message):
                return OperationResult.ok("No changes to commit")
            self.adapter.push()
        except SitepubError as e:
            logger.error(f"Commit failed: {e}")
            return OperationResult.failed(
                f"Failed to push changes: {e}", stage=e.stage or STAGE_COMMIT
            )

        logger.info(f"Content committed and pushed to {self.adapter.branch}")
        return OperationResult.ok(f"Changes pushed to {self.adapter.branch}")
