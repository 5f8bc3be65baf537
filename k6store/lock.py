"""Advisory, process-wide locks on directories."""

from __future__ import annotations

import errno
import os
import threading
import time

_DEFAULT_BACKOFF = 1.0

if os.name == "nt":
    import msvcrt

    _LOCK_FILE_NAME = "k6provider.lock"
    _BUSY_ERRNOS = {errno.EACCES, errno.EDEADLK, errno.EAGAIN}

    def _acquire(fd: int) -> bool:
        os.lseek(fd, 0, os.SEEK_SET)
        try:
            msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
        except OSError as exc:
            if exc.errno in _BUSY_ERRNOS:
                return False
            raise
        return True

    def _release(fd: int) -> None:
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)

else:
    import fcntl

    _LOCK_FILE_NAME = ".lock"
    _BUSY_ERRNOS = {errno.EWOULDBLOCK, errno.EAGAIN}

    def _acquire(fd: int) -> bool:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as exc:
            if exc.errno in _BUSY_ERRNOS:
                return False
            raise
        return True

    def _release(fd: int) -> None:
        fcntl.flock(fd, fcntl.LOCK_UN)


class LockedError(Exception):
    """The directory is locked by someone else."""

    def __init__(self, message: str = "file locked") -> None:
        super().__init__(message)


class LockFailedError(Exception):
    """The lock file could not be accessed or locked."""


class UnlockFailedError(Exception):
    """The lock could not be released."""


class DirLock:
    """An advisory write lock on a directory, held through a lock file in it."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.lock_file = os.path.join(os.fspath(path), _LOCK_FILE_NAME)
        self._mutex = threading.Lock()
        self._fd: int | None = None

    def try_lock(self) -> None:
        """Take the lock or raise LockedError at once; holding it already is fine."""
        with self._mutex:
            if self._fd is not None:
                return
            try:
                fd = os.open(self.lock_file, os.O_RDWR | os.O_CREAT, 0o600)
            except OSError as exc:
                raise LockFailedError(f"failed to lock file {exc}") from exc
            try:
                acquired = _acquire(fd)
            except OSError as exc:
                os.close(fd)
                raise LockFailedError(f"failed to lock file {exc}") from exc
            if not acquired:
                os.close(fd)
                raise LockedError()
            self._fd = fd

    def lock(self, timeout: float = 0) -> None:
        """Wait for the lock with doubling back-off; a timeout of 0 waits forever."""
        backoff = _DEFAULT_BACKOFF
        deadline = time.monotonic() + timeout
        while True:
            try:
                self.try_lock()
                return
            except LockedError:
                if timeout != 0 and time.monotonic() > deadline:
                    raise
            time.sleep(backoff)
            backoff *= 2

    def unlock(self) -> None:
        """Release the lock; releasing an unheld lock does nothing."""
        with self._mutex:
            if self._fd is None:
                return
            fd, self._fd = self._fd, None
            try:
                _release(fd)
            except OSError as exc:
                raise UnlockFailedError(f"failed to unlock file {exc}") from exc
            finally:
                os.close(fd)

    def __enter__(self) -> DirLock:
        self.lock(0)
        return self

    def __exit__(self, *args: object) -> None:
        self.unlock()