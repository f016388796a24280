"""
Status inspection: has the repository moved since its last published tag?

Status is advisory, so get_status() never raises; failures become a
message with has_unpublished_changes=False.
"""

import logging

from sitepub.git.adapter import GitAdapter
from sitepub.lib.errors import SitepubError
from sitepub.lib.types import DeploymentStatus

logger = logging.getLogger(__name__)


def latest_tag(adapter: GitAdapter) -> str | None:
    """
    Most recently created tag reachable from HEAD, or None.

    After a rollback this is the pinned tag, even when newer tags exist.
    """
    tags = adapter.list_tags(merged="HEAD")
    return tags[0] if tags else None


def has_changes_since(adapter: GitAdapter, tag: str | None) -> bool:
    """Check if HEAD differs from tag. No tag means everything is unpublished."""
    if tag is None:
        return True
    return adapter.diff_summary(f"{tag}..HEAD").has_changes


def inspect_changes(adapter: GitAdapter) -> tuple[str | None, bool]:
    """
    Return (current_tag, has_changes) for the publish pipeline.

    Tags must already be fetched. If the diff itself fails the repository is
    assumed to have changes.
    """
    current = latest_tag(adapter)
    try:
        return current, has_changes_since(adapter, current)
    except SitepubError as e:
        logger.warning(f"Could not diff against {current}, assuming changes: {e}")
        return current, True


def get_status(adapter: GitAdapter) -> DeploymentStatus:
    """Fetch tags and compare HEAD with the latest one."""
    try:
        adapter.fetch_tags()
        current = latest_tag(adapter)
        if current is None:
            return DeploymentStatus(
                has_unpublished_changes=True,
                message="No tags found, site has never been published",
            )

        changed = has_changes_since(adapter, current)
        if changed:
            message = f"Unpublished changes detected. Last published tag: {current}"
        else:
            message = f"All changes are published. Current tag: {current}"
        return DeploymentStatus(
            current_tag=current,
            has_unpublished_changes=changed,
            message=message,
        )
    except SitepubError as e:
        logger.warning(f"Status check failed: {e}")
        return DeploymentStatus(
            has_unpublished_changes=False,
            message=f"Status check failed: {e}",
        )
    except Exception as e:
        logger.exception("Status check failed")
        return DeploymentStatus(
            has_unpublished_changes=False,
            message=f"Status check failed: {e}",
        )
