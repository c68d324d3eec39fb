"""
Run lock - at most one sync or push in flight.

An exclusive lock file created with O_CREAT | O_EXCL. The file holds the
owning pid and acquisition time. A lock left behind by a process that
no longer exists, or older than stale_after seconds, is reclaimed.
"""

from __future__ import annotations

import logging
import os
import re
import time
from datetime import datetime, timezone
from pathlib import Path

from alerttracker.domain.errors import RunInProgressError

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.2
STALE_AFTER_SECONDS = 6 * 3600

_PID_PATTERN = re.compile(r"\bpid=(\d+)")


def _pid_alive(pid: int) -> bool:
    """Best-effort liveness check for a pid on this host."""
    if os.name == "nt":
        # signal 0 is CTRL_C_EVENT on Windows; rely on the age limit there
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class RunLock:
    """
    Process-wide mutual exclusion through a lock file.

    Usage:
        with RunLock(config.lock_file, wait_seconds=5, operation="sync"):
            ...
    """

    def __init__(
        self,
        path: str | Path,
        wait_seconds: float = 5.0,
        operation: str = "run",
        stale_after: float = STALE_AFTER_SECONDS,
    ):
        self.path = Path(path)
        self.wait_seconds = wait_seconds
        self.operation = operation
        self.stale_after = stale_after
        self._held = False

    def acquire(self) -> None:
        """
        Take the lock, polling up to wait_seconds.

        Raises:
            RunInProgressError: another run holds the lock
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + self.wait_seconds
        while True:
            try:
                fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                if self._reclaim_stale():
                    continue
                if time.monotonic() >= deadline:
                    raise RunInProgressError(
                        f"Another run is already in progress ({self.holder() or 'unknown holder'}). "
                        f"Try again later."
                    ) from None
                time.sleep(POLL_INTERVAL)
                continue
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(
                    f"pid={os.getpid()} op={self.operation} "
                    f"at={datetime.now(timezone.utc).isoformat()}\n"
                )
            self._held = True
            logger.debug("Lock acquired: %s (%s)", self.path, self.operation)
            return

    def release(self) -> None:
        if not self._held:
            return
        try:
            self.path.unlink()
        except FileNotFoundError:
            logger.warning("Lock file already removed: %s", self.path)
        self._held = False
        logger.debug("Lock released: %s", self.path)

    def _reclaim_stale(self) -> bool:
        """Remove a lock whose owner is gone or which has outlived stale_after."""
        holder = self.holder()
        match = _PID_PATTERN.search(holder)
        dead = match is not None and not _pid_alive(int(match.group(1)))
        try:
            age = time.time() - self.path.stat().st_mtime
        except FileNotFoundError:
            return True
        if not dead and age < self.stale_after:
            return False

        logger.warning(
            "Reclaiming stale lock %s (%s, age %.0fs)",
            self.path,
            holder or "no holder recorded",
            age,
        )
        self.path.unlink(missing_ok=True)
        return True

    def holder(self) -> str:
        """Contents of the lock file, or "" when unlocked."""
        try:
            return self.path.read_text(encoding="utf-8").strip()
        except OSError:
            return ""

    @property
    def is_held(self) -> bool:
        return self._held

    def __enter__(self) -> RunLock:
        self.acquire()
        return self

    def __exit__(self, *exc) -> None:
        self.release()
