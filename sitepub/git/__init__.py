"""Git operations for sitepub.

Return type conventions:
- Functions in runner/remote/tags/diff/commit return GitResult (caller must
  check .success), bool, or parsed values, mirroring the git CLI closely.
- GitAdapter binds them to one repository and raises typed errors from
  sitepub.lib.errors instead of returning failures.
"""

from sitepub.git.runner import run_git, GitResult
from sitepub.git.diff import DiffSummary, parse_shortstat
from sitepub.git.remote import (
    authenticated_url,
    normalize_url,
    parse_ls_remote_tags,
    redact,
)
from sitepub.git.tags import parse_tag_list
from sitepub.git.adapter import GitAdapter, Identity

__all__ = [
    "run_git",
    "GitResult",
    "DiffSummary",
    "parse_shortstat",
    "authenticated_url",
    "normalize_url",
    "parse_ls_remote_tags",
    "redact",
    "parse_tag_list",
    "GitAdapter",
    "Identity",
]
