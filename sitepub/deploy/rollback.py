"""
Rollback: rebuild the local repository pinned at a published tag.

Order of operations:
1. confirm the tag exists on the remote (nothing local touched yet)
2. move the current repository aside
3. clone fresh, fetch tags, check out the tag (detached HEAD)
4. drop the moved-aside copy, or put it back if step 3 failed

A failed rollback therefore leaves the previous repository in place.
"""

import logging
import shutil
from pathlib import Path

from sitepub.git.adapter import GitAdapter
from sitepub.lib.constants import (
    STAGE_CHECKOUT,
    STAGE_CLONE,
    STAGE_FETCH,
    STAGE_VALIDATE,
)
from sitepub.lib.errors import ConflictError, SitepubError
from sitepub.lib.types import RollbackResult

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".rollback-backup"


class RollbackManager:
    """Reconstructs the repository at a previously published tag."""

    def __init__(self, adapter: GitAdapter):
        self.adapter = adapter

    @property
    def repo_path(self) -> Path:
        return self.adapter.repo_path

    @property
    def backup_path(self) -> Path:
        return self.repo_path.with_name(f".{self.repo_path.name}{BACKUP_SUFFIX}")

    def rollback(self, tag: str) -> RollbackResult:
        tag = (tag or "").strip()
        if not tag:
            return RollbackResult.failed("Tag is required for rollback", stage=STAGE_VALIDATE)

        logger.info(f"Starting rollback to tag: {tag}")
        try:
            if not self.adapter.remote_tag_exists(tag):
                raise ConflictError(f'Tag "{tag}" does not exist in the repository')
        except SitepubError as e:
            logger.error(f"Rollback rejected: {e}")
            return RollbackResult.failed(
                f"Rollback failed at {STAGE_VALIDATE} stage: {e}", stage=STAGE_VALIDATE
            )

        try:
            self._recover_stale_backup()
            had_repo = self._move_aside()
        except OSError as e:
            logger.exception("Could not move repository aside")
            return RollbackResult.failed(
                f"Rollback failed at {STAGE_CLONE} stage: could not move repository aside: {e}",
                stage=STAGE_CLONE,
            )

        stage = STAGE_CLONE
        try:
            self.adapter.clone()

            stage = STAGE_FETCH
            self.adapter.fetch_tags()
            if not self.adapter.has_tag(tag):
                raise ConflictError(f'Tag "{tag}" does not exist in the repository')

            stage = STAGE_CHECKOUT
            self.adapter.checkout(tag)
        except Exception as e:
            if not isinstance(e, SitepubError):
                logger.exception(f"Rollback failed at {stage} stage")
            message = f"Rollback failed at {stage} stage: {e}"
            restored = self._restore(had_repo)
            if had_repo and not restored:
                message += f" (previous repository kept at {self.backup_path})"
            elif had_repo:
                message += " (previous repository restored)"
            return RollbackResult.failed(message, stage=stage)

        self._discard_backup()
        logger.info(f"Rollback completed. Repository is now at tag: {tag}")
        return RollbackResult.ok(f"Rollback completed to tag: {tag}", tag=tag)

    def _recover_stale_backup(self) -> None:
        """Deal with a backup left behind by an interrupted rollback."""
        backup = self.backup_path
        if not backup.exists():
            return
        if self.repo_path.exists():
            logger.warning(f"Removing stale rollback backup {backup}")
            shutil.rmtree(backup)
        else:
            logger.warning(f"Restoring repository from stale rollback backup {backup}")
            backup.rename(self.repo_path)

    def _move_aside(self) -> bool:
        if not self.repo_path.exists():
            return False
        self.repo_path.rename(self.backup_path)
        logger.info(f"Moved {self.repo_path} aside to {self.backup_path}")
        return True

    def _restore(self, had_repo: bool) -> bool:
        """Remove the partial clone and put the previous repository back."""
        try:
            if self.repo_path.exists():
                shutil.rmtree(self.repo_path)
            if had_repo:
                self.backup_path.rename(self.repo_path)
                logger.info(f"Restored previous repository at {self.repo_path}")
            return True
        except OSError:
            logger.exception("Could not restore previous repository")
            return False

    def _discard_backup(self) -> None:
        if not self.backup_path.exists():
            return
        try:
            shutil.rmtree(self.backup_path)
        except OSError as e:
            logger.warning(f"Could not remove rollback backup {self.backup_path}: {e}")
