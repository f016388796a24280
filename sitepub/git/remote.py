"""Git remote operations: clone, fetch, push, remote tag enumeration."""

import re
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

from sitepub.git.runner import run_git, GitResult

NETWORK_TIMEOUT = 300

REMOTE_TAG_PATTERN = re.compile(r'refs/tags/(.+?)(\^\{\})?$')


def normalize_url(url: str) -> str:
    """Drop stray '@' characters left by templated URLs like 'https://@host/repo'."""
    url = url.strip()
    if url.startswith("https://@"):
        url = "https://" + url[len("https://@"):]
    elif url.startswith("http://@"):
        url = "http://" + url[len("http://@"):]
    return url


def authenticated_url(url: str, token: str) -> str:
    """
    Embed an access token into an http(s) remote URL.

    Local paths, file:// and ssh URLs are returned unchanged; any
    credentials already present in the URL are replaced.
    """
    url = normalize_url(url)
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not token:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, f"{token}@{host}", parts.path, parts.query, parts.fragment))


def redact(text: str, token: str) -> str:
    """Replace every occurrence of the token with '***'."""
    if not token:
        return text
    return text.replace(token, "***")


def clone(url: str, dest: Path, branch: str | None = None,
          timeout: int = NETWORK_TIMEOUT, env: dict | None = None) -> GitResult:
    """Clone url into dest, optionally checking out branch."""
    args = ["clone"]
    if branch:
        args += ["--branch", branch]
    args += [url, str(dest)]
    return run_git(args, None, timeout=timeout, env=env)


def fetch_tags(repo: Path, remote: str = "origin", timeout: int = NETWORK_TIMEOUT) -> GitResult:
    """Fetch all tags from remote, overwriting stale local ones."""
    return run_git(["fetch", remote, "--tags", "--force"], repo, timeout=timeout)


def pull_ff_only(repo: Path, remote: str, branch: str, timeout: int = NETWORK_TIMEOUT) -> GitResult:
    """Pull branch with fast-forward only (no merge commits)."""
    return run_git(["pull", "--ff-only", remote, branch], repo, timeout=timeout)


def push(repo: Path, remote: str, refspec: str, force: bool = False,
         timeout: int = NETWORK_TIMEOUT, env: dict | None = None) -> GitResult:
    """Push refspec to remote (a remote name or URL)."""
    args = ["push"]
    if force:
        args.append("--force")
    args += [remote, refspec]
    return run_git(args, repo, timeout=timeout, env=env)


def push_tags(repo: Path, remote: str, timeout: int = NETWORK_TIMEOUT) -> GitResult:
    """Push all local tags to remote."""
    return run_git(["push", remote, "--tags"], repo, timeout=timeout)


def ls_remote_tags(url: str, timeout: int = NETWORK_TIMEOUT) -> GitResult:
    """List tags on a remote without needing a local repository."""
    return run_git(["ls-remote", "--tags", url], None, timeout=timeout)


def parse_ls_remote_tags(output: str) -> list[str]:
    """
    Extract tag names from `git ls-remote --tags` output.

    Annotated tags appear twice (the tag object and the peeled '^{}'
    commit); each name is reported once, in first-seen order.
    """
    tags = []
    seen = set()
    for line in output.splitlines():
        if "refs/tags/" not in line:
            continue
        match = REMOTE_TAG_PATTERN.search(line.strip())
        if not match:
            continue
        name = match.group(1)
        if name not in seen:
            seen.add(name)
            tags.append(name)
    return tags
