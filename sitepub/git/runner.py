"""Git command runner with timeout handling."""

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

DEFAULT_TIMEOUT = 60


@dataclass
class GitResult:
    """Result of a git command."""
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def error_text(self) -> str:
        """Best human-readable explanation of a failure."""
        return self.stderr.strip() or self.stdout.strip() or f"exit code {self.returncode}"


def run_git(
    args: list[str],
    cwd: Path | None = None,
    timeout: int = DEFAULT_TIMEOUT,
    env: dict[str, str] | None = None,
) -> GitResult:
    """
    Run a git command with timeout handling.

    Args:
        args: Git command arguments (e.g., ["tag", "--list"])
        cwd: Repository to run in (passed as -C), or None for commands
            that do not need one (clone, ls-remote)
        timeout: Timeout in seconds
        env: Extra environment variables layered over os.environ

    Returns:
        GitResult with returncode, stdout, stderr, and timed_out flag
    """
    cmd = ["git"]
    if cwd is not None:
        cmd += ["-C", str(cwd)]
    cmd += args

    # Never block on a credential prompt
    run_env = dict(os.environ)
    run_env["GIT_TERMINAL_PROMPT"] = "0"
    if env:
        run_env.update(env)

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=run_env,
        )
        return GitResult(
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
    except subprocess.TimeoutExpired:
        return GitResult(
            returncode=-1,
            stdout="",
            stderr=f"Command timed out after {timeout}s",
            timed_out=True,
        )
    except FileNotFoundError:
        return GitResult(
            returncode=127,
            stdout="",
            stderr="git executable not found",
        )
