"""Tag sequencing: compute the next published version from existing tags."""

from typing import Sequence

from sitepub.lib.constants import FIRST_TAG, TAG_PATTERN
from sitepub.lib.errors import MalformedTagError


def parse_tag(tag: str) -> tuple[int, int, int]:
    """
    Split 'vMAJOR.MINOR.PATCH' into integers.

    Raises:
        MalformedTagError: if tag does not match the pattern
    """
    match = TAG_PATTERN.match(tag.strip())
    if not match:
        raise MalformedTagError(tag)
    major, minor, patch = (int(g) for g in match.groups())
    return major, minor, patch


def next_tag(existing_tags: Sequence[str]) -> str:
    """
    Return the tag that follows the most recently created one.

    Args:
        existing_tags: Tags in creation order, oldest first. The last entry is
            the latest release regardless of its semantic value.

    Only the patch component is incremented; minor and major bumps are made
    by hand.

    Raises:
        MalformedTagError: if the latest tag cannot be parsed
    """
    if not existing_tags:
        return FIRST_TAG
    major, minor, patch = parse_tag(existing_tags[-1])
    return f"v{major}.{minor}.{patch + 1}"


def version_key(tag: str) -> tuple[int, int, int]:
    """Sort key for tags by semantic version; unparseable tags sort first."""
    try:
        return parse_tag(tag)
    except MalformedTagError:
        return (-1, -1, -1)
