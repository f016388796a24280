"""Git commit, checkout and working-tree operations."""

from pathlib import Path

from sitepub.git.runner import run_git, GitResult


def init(repo: Path) -> GitResult:
    """Initialise a new repository (no-op if one exists)."""
    return run_git(["init", "--quiet"], repo)


def stage_all(worktree: Path) -> GitResult:
    """Stage all changes (new, modified, deleted)."""
    return run_git(["add", "-A"], worktree)


def has_staged_changes(worktree: Path) -> bool:
    """Check if the index differs from HEAD."""
    result = run_git(["diff", "--cached", "--quiet"], worktree)
    # exit 0 = no changes, exit 1 = has changes
    return result.returncode == 1


def commit(worktree: Path, message: str, env: dict | None = None,
           allow_empty: bool = False) -> GitResult:
    """Create a commit with the given message."""
    args = ["commit", "--quiet", "-m", message]
    if allow_empty:
        args.append("--allow-empty")
    return run_git(args, worktree, env=env)


def checkout(repo: Path, ref: str) -> GitResult:
    """Check out a branch, tag or commit."""
    return run_git(["checkout", "--quiet", ref], repo)


def set_head_branch(repo: Path, branch: str) -> GitResult:
    """Point HEAD at branch (works on a freshly initialised repository)."""
    return run_git(["symbolic-ref", "HEAD", f"refs/heads/{branch}"], repo)


def get_commit_sha(worktree: Path, ref: str = "HEAD") -> str | None:
    """Get the SHA of a ref."""
    result = run_git(["rev-parse", "--verify", "--quiet", ref], worktree)
    if result.success:
        return result.stdout.strip()
    return None
