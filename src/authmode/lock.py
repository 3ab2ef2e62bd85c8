"""Exclusive run lock.

Configure and unconfigure both rewrite the shared httpd configuration
directory and the settings store, so at most one run may be in flight on
an appliance.  The lock is an exclusive, non-blocking ``flock`` on a lock
file; a second caller fails immediately instead of waiting.

Usage::

    with RunLock("/run/authmode.lock", owner="configure"):
        ...  # work while holding the lock
"""

from __future__ import annotations

import fcntl
import logging
import os
from pathlib import Path
from typing import IO, Any

from authmode.errors import ConcurrentRunError

logger = logging.getLogger(__name__)


class RunLock:
    """Context manager holding an exclusive ``flock`` on *path*.

    :param path: Lock file, created if missing.  Its contents are the
        PID and owner of the current holder, for diagnostics only.
    :param owner: Label recorded in the lock file.
    """

    def __init__(self, path: str | os.PathLike, *, owner: str = "unknown") -> None:
        self.path = Path(path)
        self.owner = owner
        self._fh: IO[str] | None = None

    @property
    def held(self) -> bool:
        return self._fh is not None

    def acquire(self) -> None:
        """Take the lock.

        :raises ConcurrentRunError: If another process holds it.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fh = self.path.open("a+", encoding="utf-8")
        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            fh.seek(0)
            holder = fh.read().strip() or "unknown"
            fh.close()
            raise ConcurrentRunError(
                f"Another authentication change is in progress ({holder}); lock file {self.path}"
            ) from None
        except OSError:
            fh.close()
            raise

        fh.seek(0)
        fh.truncate()
        fh.write(f"pid={os.getpid()} owner={self.owner}\n")
        fh.flush()
        self._fh = fh
        logger.debug("Acquired run lock %s for %s", self.path, self.owner)

    def release(self) -> None:
        if self._fh is None:
            return
        try:
            self._fh.seek(0)
            self._fh.truncate()
            fcntl.flock(self._fh.fileno(), fcntl.LOCK_UN)
        finally:
            self._fh.close()
            self._fh = None
        logger.debug("Released run lock %s", self.path)

    def __enter__(self) -> RunLock:
        self.acquire()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.release()
