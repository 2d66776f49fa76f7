import json
import os
import tempfile
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType

import psutil
from loguru import logger

DEFAULT_LOCK_FILE = Path(tempfile.gettempdir()) / "midjourney-upscaler.lock"
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_STALE_AFTER = 30 * 60.0

BREAK_GUARD_SUFFIX = ".break"
BREAK_GUARD_STALE_AFTER = 60.0


@dataclass(frozen=True)
class LockHolder:
    pid: int | None
    token: str | None
    acquired_at: float


class ProcessLock:
    """A lock shared between processes: the lock file exists while it is held.

    The file is created with O_CREAT | O_EXCL so that seeing the lock free and
    taking it is a single atomic step. Waiters poll every 'poll_interval'
    seconds.

    A lock held by a live process is never broken. A lock is broken when its
    holder process is gone, or when it names no process at all (the holder
    died before writing its details) and is older than 'stale_after' seconds.
    Breakers take turns through a guard file, and each holder writes a random
    token so that 'release' only ever removes its own lock.
    """

    def __init__(
        self,
        lock_file: Path = DEFAULT_LOCK_FILE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        stale_after: float | None = DEFAULT_STALE_AFTER,
    ) -> None:
        self.lock_file = lock_file
        self.poll_interval = poll_interval
        self.stale_after = stale_after
        self._token: str | None = None

    def __enter__(self) -> "ProcessLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.release()

    def is_owned(self) -> bool:
        return self._token is not None

    def get_break_guard_file(self) -> Path:
        return self.lock_file.with_name(self.lock_file.name + BREAK_GUARD_SUFFIX)

    def acquire(self) -> None:
        token = uuid.uuid4().hex

        waiting = False
        while not self._try_create(token):
            if not waiting:
                logger.debug(f'Waiting for upscaler lock "{self.lock_file}".')
                waiting = True
            if self._break_if_stale():
                continue
            time.sleep(self.poll_interval)

        self._token = token

    def release(self) -> None:
        if self._token is None:
            return
        token = self._token
        self._token = None

        holder = self.read_holder()
        if holder is None or holder.token != token:
            logger.warning(f'Upscaler lock "{self.lock_file}" was taken over, leaving it.')
            return

        self.lock_file.unlink(missing_ok=True)

    def _try_create(self, token: str) -> bool:
        try:
            fd = os.open(self.lock_file, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False

        with os.fdopen(fd, "w") as f:
            json.dump({"pid": os.getpid(), "token": token, "acquired_at": time.time()}, f)

        return True

    def read_holder(self) -> LockHolder | None:
        return read_lock_holder(self.lock_file)

    def get_stale_reason(self, holder: LockHolder) -> str | None:
        if holder.pid is not None:
            if psutil.pid_exists(holder.pid):
                return None
            return f"holder process {holder.pid} is gone"

        if self.stale_after is None or time.time() - holder.acquired_at <= self.stale_after:
            return None

        return f"no holder recorded for more than {int(self.stale_after)}s"

    def _break_if_stale(self) -> bool:
        holder = self.read_holder()
        if holder is None:
            return True
        if self.get_stale_reason(holder) is None:
            return False

        guard_file = self.get_break_guard_file()
        if not _try_create_guard(guard_file):
            _remove_guard_if_stale(guard_file)
            return False

        try:
            return self._break_under_guard()
        finally:
            guard_file.unlink(missing_ok=True)

    def _break_under_guard(self) -> bool:
        # Judge again: another breaker may have already replaced the lock.
        holder = self.read_holder()
        if holder is None:
            return True
        reason = self.get_stale_reason(holder)
        if reason is None:
            return False

        aside_file = self.lock_file.with_name(f"{self.lock_file.name}.{uuid.uuid4().hex}.stale")
        try:
            os.rename(self.lock_file, aside_file)
        except FileNotFoundError:
            return True

        try:
            if read_lock_holder(aside_file) != holder:
                # A new holder took the lock after it was judged. Put it back.
                try:
                    os.link(aside_file, self.lock_file)
                except FileExistsError:
                    logger.warning(f'Could not restore upscaler lock "{self.lock_file}".')
                return True
        finally:
            aside_file.unlink(missing_ok=True)

        logger.warning(f'Broke stale upscaler lock "{self.lock_file}": {reason}.')

        return True


def read_lock_holder(lock_file: Path) -> LockHolder | None:
    try:
        content = lock_file.read_text()
        mtime = lock_file.stat().st_mtime
    except FileNotFoundError:
        return None

    try:
        holder = json.loads(content)
        return LockHolder(
            pid=int(holder["pid"]),
            token=str(holder["token"]),
            acquired_at=float(holder["acquired_at"]),
        )
    except (ValueError, KeyError, TypeError):
        # The holder may not have written its details yet.
        return LockHolder(None, None, mtime)


def _try_create_guard(guard_file: Path) -> bool:
    try:
        fd = os.open(guard_file, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    except FileExistsError:
        return False

    with os.fdopen(fd, "w") as f:
        f.write(str(os.getpid()))

    return True


def _remove_guard_if_stale(guard_file: Path) -> None:
    try:
        content = guard_file.read_text()
        age = time.time() - guard_file.stat().st_mtime
    except FileNotFoundError:
        return

    try:
        pid_gone = not psutil.pid_exists(int(content))
    except ValueError:
        pid_gone = False

    if pid_gone or age > BREAK_GUARD_STALE_AFTER:
        logger.warning(f'Removing abandoned lock guard "{guard_file}".')
        guard_file.unlink(missing_ok=True)


def remove_lock_held_by(lock_file: Path, pids: set[int]) -> bool:
    """Remove 'lock_file' if one of 'pids' holds it. Used when a run is interrupted."""
    holder = read_lock_holder(lock_file)
    if holder is None or holder.pid not in pids:
        return False

    logger.debug(f'Removing upscaler lock "{lock_file}" held by process {holder.pid}.')
    lock_file.unlink(missing_ok=True)

    return True
