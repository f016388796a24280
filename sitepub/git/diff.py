"""Git diff operations."""

import re
from dataclasses import dataclass
from pathlib import Path

from sitepub.git.runner import run_git, GitResult

_FILES_RE = re.compile(r'(\d+) files? changed')
_INSERTIONS_RE = re.compile(r'(\d+) insertions?\(\+\)')
_DELETIONS_RE = re.compile(r'(\d+) deletions?\(-\)')


@dataclass
class DiffSummary:
    """Counts from `git diff --shortstat`."""
    changed: int = 0
    insertions: int = 0
    deletions: int = 0

    @property
    def has_changes(self) -> bool:
        return self.changed > 0 or self.insertions > 0 or self.deletions > 0


def parse_shortstat(output: str) -> DiffSummary:
    """
    Parse a --shortstat line.

    Example:
        " 3 files changed, 10 insertions(+), 2 deletions(-)"
        -> DiffSummary(changed=3, insertions=10, deletions=2)

    Empty output (no differences) gives an all-zero summary.
    """
    def _count(pattern: re.Pattern) -> int:
        match = pattern.search(output)
        return int(match.group(1)) if match else 0

    return DiffSummary(
        changed=_count(_FILES_RE),
        insertions=_count(_INSERTIONS_RE),
        deletions=_count(_DELETIONS_RE),
    )


def get_shortstat(repo: Path, ref_range: str) -> GitResult:
    """Run git diff --shortstat for a ref range (e.g., "v1.0.0..HEAD")."""
    return run_git(["diff", "--shortstat", ref_range], repo)
