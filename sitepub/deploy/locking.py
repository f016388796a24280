"""
Deployment lock.

Serialises publish, rollback, preview start/stop, sync and commit. An
in-process threading.Lock covers concurrent requests inside one service;
an flock on <state_dir>/locks/deploy.lock covers separate CLI processes
sharing the same repository.
"""

import atexit
import fcntl
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path

POLL_INTERVAL_SECONDS = 0.2


class LockTimeout(Exception):
    """Lock acquisition timed out."""
    pass


class DeploymentLock:
    """Mutual exclusion for mutating deployment operations."""

    def __init__(self, state_dir: Path, timeout: float = 600):
        self.lock_file = Path(state_dir) / "locks" / "deploy.lock"
        self.timeout = timeout
        self._thread_lock = threading.Lock()

    def is_held(self) -> bool:
        """Best-effort check used for status reporting only."""
        return self._thread_lock.locked()

    @contextmanager
    def hold(self, operation: str, timeout: float | None = None):
        """
        Acquire both locks, yield, release on exit.

        Args:
            operation: Name used in the timeout message (e.g., "publish")
            timeout: Seconds to wait; defaults to the lock's timeout

        Raises:
            LockTimeout: if either lock could not be acquired in time
        """
        wait = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + wait

        if not self._thread_lock.acquire(timeout=wait):
            raise LockTimeout(
                f"Could not start {operation}: another deployment operation "
                f"is still running after {wait}s"
            )
        try:
            with self._file_lock(operation, deadline, wait):
                yield
        finally:
            self._thread_lock.release()

    @contextmanager
    def _file_lock(self, operation: str, deadline: float, wait: float):
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        fd = open(self.lock_file, 'w')

        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    fd.close()
                    raise LockTimeout(
                        f"Could not start {operation}: deployment lock "
                        f"{self.lock_file} held by another process after {wait}s"
                    )
                time.sleep(POLL_INTERVAL_SECONDS)

        def cleanup():
            if fd.closed:
                return
            try:
                fcntl.flock(fd, fcntl.LOCK_UN)
            finally:
                fd.close()

        atexit.register(cleanup)
        try:
            fd.write(f"{os.getpid()} {operation}\n")
            fd.flush()
            yield
        finally:
            atexit.unregister(cleanup)
            cleanup()
