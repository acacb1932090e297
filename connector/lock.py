"""
File-based lock preventing overlapping sync runs in one host.

The checkpoint read-then-write is not safe under concurrent runs; the
scheduler never overlaps its own jobs and this lock covers manual runs
started from the API or the command line on the same machine.
"""

import fcntl
import logging
from contextlib import contextmanager
from pathlib import Path

from core.exceptions import SyncInProgressError

logger = logging.getLogger(__name__)


class RunLock:
    """Non-blocking exclusive lock on a file"""

    def __init__(self, path: str):
        self.lock_file = Path(path)
        self.lock_fd = None

    def acquire(self) -> bool:
        """Return True if the lock was acquired, False if already held"""
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        fd = open(self.lock_file, "w")
        try:
            fcntl.flock(fd.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            fd.close()
            logger.warning(f"Sync already in progress (lock held: {self.lock_file})")
            return False

        self.lock_fd = fd
        logger.debug(f"Sync lock acquired: {self.lock_file}")
        return True

    def release(self):
        if self.lock_fd:
            fcntl.flock(self.lock_fd.fileno(), fcntl.LOCK_UN)
            self.lock_fd.close()
            self.lock_fd = None
            logger.debug(f"Sync lock released: {self.lock_file}")

    @property
    def is_held(self) -> bool:
        return self.lock_fd is not None

    @contextmanager
    def hold(self):
        """Context manager for lock acquisition."""
        if not self.acquire():
            raise SyncInProgressError(
                "Another sync run is in progress",
                context={"lock_file": str(self.lock_file)}
            )
        try:
            yield
        finally:
            self.release()
