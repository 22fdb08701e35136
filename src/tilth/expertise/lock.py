"""Advisory cross-process file locks backed by an exclusive ``.lock`` marker.

The marker is a zero-byte sibling of the locked file. Its existence plus its
own modification time is the whole protocol: a marker older than
``stale_seconds`` is taken to belong to a crashed process and removed.
Staleness is judged with ``lstat`` so a symlinked marker never makes us look
at (or touch) whatever it points to. A stale marker is renamed aside before
it is deleted, so only one waiter can clear it.
"""
from __future__ import annotations

import contextlib
import os
import time
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import TypeVar

from tilth.config.constants import (
    LOCK_POLL_INTERVAL_SECONDS,
    LOCK_STALE_SECONDS,
    LOCK_SUFFIX,
    LOCK_TIMEOUT_SECONDS,
)
from tilth.core.logging_config import get_logger
from tilth.expertise.errors import LockTimeoutError, StoreIOError, StoreNotInitializedError

logger = get_logger(__name__)

T = TypeVar("T")


def lock_path_for(path: Path | str) -> Path:
    return Path(f"{os.fspath(path)}{LOCK_SUFFIX}")


class FileLock:
    """Exclusive advisory lock on *path*.

    Usage::

        with FileLock(path):
            records = read_expertise_file(path)
            ...
            write_expertise_file(path, records)
    """

    def __init__(
        self,
        path: Path | str,
        *,
        timeout: float = LOCK_TIMEOUT_SECONDS,
        stale_seconds: float = LOCK_STALE_SECONDS,
        poll_interval: float = LOCK_POLL_INTERVAL_SECONDS,
    ) -> None:
        self.path = Path(path)
        self.lock_path = lock_path_for(path)
        self.timeout = timeout
        self.stale_seconds = stale_seconds
        self.poll_interval = poll_interval
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def _try_create(self) -> bool:
        try:
            fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        except FileNotFoundError as exc:
            raise StoreNotInitializedError(
                f"Cannot lock {self.path}: directory {self.lock_path.parent} does not exist."
            ) from exc
        except OSError as exc:
            raise StoreIOError(self.lock_path, exc) from exc
        os.close(fd)
        return True

    def _remove_if_stale(self) -> bool:
        """Remove the marker when its own mtime is older than the stale threshold."""
        try:
            st = os.lstat(self.lock_path)
        except FileNotFoundError:
            # Released between our create attempt and now
            return True
        age = time.time() - st.st_mtime
        if age <= self.stale_seconds:
            return False
        logger.debug("Removing stale lock %s (age %.1fs)", self.lock_path, age)

        # Only one contender can win the rename; the loser sees FileNotFoundError
        claimed = self.lock_path.with_name(
            f"{self.lock_path.name}.stale.{os.getpid()}.{time.monotonic_ns()}"
        )
        try:
            os.rename(self.lock_path, claimed)
        except FileNotFoundError:
            return True
        except OSError as exc:
            raise StoreIOError(self.lock_path, exc) from exc

        try:
            moved = os.lstat(claimed)
            if (moved.st_ino, moved.st_mtime_ns) != (st.st_ino, st.st_mtime_ns):
                # Another process replaced the marker after our lstat; hand it back
                logger.debug("Lock %s was re-acquired during stale check", self.lock_path)
                with contextlib.suppress(FileExistsError):
                    os.link(claimed, self.lock_path, follow_symlinks=False)
                return False
            return True
        except OSError as exc:
            raise StoreIOError(claimed, exc) from exc
        finally:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(claimed)

    def acquire(self) -> FileLock:
        """Block until the marker is ours or the timeout elapses.

        Raises:
            LockTimeoutError: If the lock stays held past ``timeout``
        """
        if self._held:
            raise RuntimeError(f"Lock on {self.path} is already held by this FileLock")

        deadline = time.monotonic() + self.timeout
        while True:
            if self._try_create():
                self._held = True
                logger.debug("Acquired lock %s", self.lock_path)
                return self
            if self._remove_if_stale():
                continue
            if time.monotonic() >= deadline:
                raise LockTimeoutError(self.path, self.timeout)
            time.sleep(self.poll_interval)

    def release(self) -> None:
        if not self._held:
            return
        self._held = False
        try:
            os.unlink(self.lock_path)
        except FileNotFoundError:
            logger.debug("Lock %s already gone at release", self.lock_path)
        except OSError as exc:
            raise StoreIOError(self.lock_path, exc) from exc
        else:
            logger.debug("Released lock %s", self.lock_path)

    def __enter__(self) -> FileLock:
        return self.acquire()

    def __exit__(self, *exc_info: object) -> None:
        self.release()


@contextlib.contextmanager
def file_lock(path: Path | str, **kwargs: float) -> Iterator[FileLock]:
    """Hold the advisory lock on *path* for the duration of the block."""
    lock = FileLock(path, **kwargs)
    lock.acquire()
    try:
        yield lock
    finally:
        lock.release()


def with_file_lock(path: Path | str, action: Callable[[], T], **kwargs: float) -> T:
    """Run *action* while holding the lock on *path*; release on every exit path."""
    with file_lock(path, **kwargs):
        return action()
