import functools
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from filelock import FileLock, Timeout

logger = logging.getLogger(__name__)

LOCK_FILENAME = ".conf.lock"
DEFAULT_TIMEOUT = 10.0


class LockError(Exception):
    """Base class for lock-related errors."""
    pass


class LockAcquisitionTimeoutError(LockError):
    """Raised when another phpenv-conf process holds the lock for too long."""

    def __init__(self, lock_file: Path, timeout: float):
        super().__init__(
            f"Timeout ({timeout}s) waiting for another phpenv-conf process to release {lock_file}")
        self.lock_file = lock_file
        self.timeout = timeout


@contextmanager
def version_lock(etc_dir: Path, timeout: float = DEFAULT_TIMEOUT) -> Iterator[Path]:
    """
    Holds the lock of one PHP version's etc/ directory.

    The lock file stays in place after release; it sits beside conf.d/ and
    conf.d-available/ and is never scanned as a fragment. Removing it would
    let a waiter and a newcomer lock two different files at once.

    Yields:
        The path of the lock file.
    """
    lock_path = etc_dir / LOCK_FILENAME
    try:
        etc_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise LockError(f"Failed to create lock directory {etc_dir}: {e}") from e

    lock = FileLock(str(lock_path), timeout=timeout)
    try:
        lock.acquire()
    except Timeout:
        raise LockAcquisitionTimeoutError(lock_path, timeout)
    except OSError as e:
        raise LockError(f"Failed to acquire lock {lock_path}: {e}") from e

    logger.debug(f"Lock acquired: {lock_path}")
    try:
        yield lock_path
    finally:
        lock.release()
        logger.debug(f"Lock released: {lock_path}")


def locked(method):
    """Runs a ConfigManager method while holding its version's lock."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with version_lock(self.settings.etc_dir, self.lock_timeout):
            return method(self, *args, **kwargs)
    return wrapper
