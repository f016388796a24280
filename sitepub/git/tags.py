"""Git tag operations."""

from pathlib import Path

from sitepub.git.runner import run_git, GitResult

# The last --sort key is the primary one: creation date first, then version
# so that tags created within the same second still come out newest first.
TAG_SORT_ARGS = ["--sort=-v:refname", "--sort=-creatordate"]


def list_tags(repo: Path, merged: str | None = None) -> GitResult:
    """
    List tags newest first by creation date.

    Args:
        repo: Repository path
        merged: Only tags reachable from this ref (e.g., "HEAD")
    """
    args = ["tag", "--list"] + TAG_SORT_ARGS
    if merged:
        args += ["--merged", merged]
    return run_git(args, repo)


def parse_tag_list(output: str) -> list[str]:
    """Split `git tag --list` output into names."""
    return [t.strip() for t in output.splitlines() if t.strip()]


def add_annotated_tag(repo: Path, tag: str, message: str, env: dict | None = None) -> GitResult:
    """Create an annotated tag at HEAD."""
    return run_git(["tag", "-a", tag, "-m", message], repo, env=env)


def tag_exists(repo: Path, tag: str) -> bool:
    """Check if a tag exists locally."""
    result = run_git(["show-ref", "--verify", "--quiet", f"refs/tags/{tag}"], repo)
    return result.success


def delete_tag(repo: Path, tag: str) -> GitResult:
    """Delete a local tag (used only for tags that never reached the remote)."""
    return run_git(["tag", "-d", tag], repo)
