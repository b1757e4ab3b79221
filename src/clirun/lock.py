# ==================================================================================================
#                               Exclusive execution
# ==================================================================================================
#
# File-based try-lock that keeps a logical command from running twice at once
# on the same host.
#
# Lock identity
# -------------
# The lock file name is derived from a *logical name* (the command id unless
# overridden): the name with non-alphanumeric runs collapsed to "-", plus the
# SHA-256 of the raw name. Independent processes therefore agree on the path,
# and names that normalize identically still get distinct files.
#
# Locking protocol
# ----------------
# - `acquire()` opens (creating if needed) the file and takes a non-blocking
#   exclusive `flock`. Contention returns False immediately; it never waits.
# - After locking, the descriptor is compared with the file currently at the
#   path. A releasing holder unlinks the file before unlocking, so a
#   descriptor pointing at an unlinked inode is stale and the attempt retries.
# - `release()` unlinks the file, then drops the `flock`. Releasing a lock that
#   is not held, or that another thread of this process holds, is a no-op.
# - The kernel drops `flock` when a holder dies; the leftover file is simply
#   re-locked by the next acquirer.
#

import fcntl
import hashlib
import logging
import os
import re
import threading
from pathlib import Path
from typing import Optional, TextIO, Union

from clirun.command import Command
from clirun.constants import LOCK_FILE_PREFIX, LOCK_FILE_SUFFIX, LOCK_NAME_MAX_CHARS
from clirun.errors import LockContention, LockInfrastructureError
from clirun.flags import FlagDefinitionMap, ParsedFlags

logger = logging.getLogger(__name__)

_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]+")
# Retries when the locked file was unlinked between open() and flock().
_MAX_ACQUIRE_ATTEMPTS = 5


# ==================================================================================================
#                                   HELPERS
# ==================================================================================================

def normalize_lock_name(name: str) -> str:
    """
    Collapse each run of non-alphanumeric characters into a single "-".

    The result is truncated to keep lock file names bounded; the hash suffix
    added by `lock_file_path` keeps truncated names unique.

    Usage example
    -------------
        normalize_lock_name("say hello/dynamic")  # "say-hello-dynamic"
    """
    return _NON_ALPHANUMERIC.sub("-", name)[:LOCK_NAME_MAX_CHARS]


def lock_file_path(directory: Union[str, Path], logical_name: str) -> Path:
    """
    Deterministic lock file path for `logical_name` under `directory`.

    Raises
    ------
    ValueError
        If `logical_name` is empty.
    """
    if not logical_name:
        raise ValueError("Lock name must be a non-empty string")
    digest = hashlib.sha256(logical_name.encode("utf-8")).hexdigest()
    filename = f"{LOCK_FILE_PREFIX}-{normalize_lock_name(logical_name)}-{digest}{LOCK_FILE_SUFFIX}"
    return Path(directory) / filename


# ==================================================================================================
#                                   FILE LOCK
# ==================================================================================================

class FileLock:
    """
    Non-blocking, cross-process exclusive lock on one file.

    An instance holds at most one lock at a time. A second `acquire()` on the
    same instance, from any thread, reports contention. Only the thread that
    acquired the lock can release it; `release()` from any other thread is a
    no-op returning False.

    Parameters
    ----------
    path
        Lock file path. Its directory must exist.

    Usage example
    -------------
        with FileLock(Path("/tmp/job.lock")) as acquired:
            if acquired:
                do_work()
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._fd: Optional[int] = None
        self._owner: Optional[int] = None
        self._guard = threading.Lock()

    @property
    def locked(self) -> bool:
        """True while this instance holds the lock."""
        return self._fd is not None

    def acquire(self) -> bool:
        """
        Try to take the lock without blocking.

        Returns
        -------
        bool
            True if acquired, False if another holder has it.

        Raises
        ------
        OSError
            If the file cannot be created, opened or locked, or if it kept being
            replaced by other holders for every attempt.
        """
        with self._guard:
            if self._fd is not None:
                return False

            for _ in range(_MAX_ACQUIRE_ATTEMPTS):
                fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
                try:
                    fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                    current = self._is_current_file(fd)
                    if current:
                        self._write_owner(fd)
                except BlockingIOError:
                    os.close(fd)
                    return False
                except OSError:
                    # Closing the descriptor also drops any flock taken on it.
                    os.close(fd)
                    raise

                if current:
                    self._fd = fd
                    self._owner = threading.get_ident()
                    return True

                # Locked a file that a releasing holder already unlinked.
                os.close(fd)

            raise OSError(
                f"lock file {self.path} was replaced on each of {_MAX_ACQUIRE_ATTEMPTS} attempts"
            )

    def release(self) -> bool:
        """
        Release the lock and remove the lock file.

        Returns
        -------
        bool
            True if a held lock was released. False if nothing was held or the
            lock belongs to another thread.

        Raises
        ------
        OSError
            If the lock file cannot be removed or unlocked. The descriptor is
            closed regardless, so the instance is unlocked afterwards.
        """
        with self._guard:
            fd = self._fd
            if fd is None or self._owner != threading.get_ident():
                return False
            self._fd = None
            self._owner = None
            try:
                # Unlink before unlocking; anyone who then locks the orphaned
                # inode is rejected by _is_current_file.
                try:
                    os.unlink(self.path)
                except FileNotFoundError:
                    pass
                fcntl.flock(fd, fcntl.LOCK_UN)
            finally:
                os.close(fd)
            return True

    def _is_current_file(self, fd: int) -> bool:
        try:
            on_disk = os.stat(self.path)
        except FileNotFoundError:
            return False
        held = os.fstat(fd)
        return (held.st_dev, held.st_ino) == (on_disk.st_dev, on_disk.st_ino)

    @staticmethod
    def _write_owner(fd: int) -> None:
        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode("ascii"))

    def __enter__(self) -> bool:
        return self.acquire()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


# ==================================================================================================
#                                   LOCKABLE COMMAND
# ==================================================================================================

class LockableCommand:
    """
    Command wrapper that runs the wrapped command exclusively.

    Identity, description, flags and validation are delegated to the wrapped
    command, so a `LockableCommand` registers and dispatches like any other
    command. An instance may be shared between threads: the lock is owned by
    the thread that took it, and `unlock()` from a thread that lost the race
    leaves the holder's lock in place.

    Parameters
    ----------
    command
        Command to protect.
    lock_dir
        Existing directory that holds the lock file.
    lock_name
        Logical lock name. Defaults to `command.id`; pass a custom name to
        share one lock between commands or to lock per configuration.

    Usage example
    -------------
        registry.register(LockableCommand(SayHelloDynamic(), Path("/tmp")))
    """

    def __init__(
        self,
        command: Command,
        lock_dir: Union[str, Path],
        lock_name: Optional[str] = None,
    ) -> None:
        self.command = command
        self.lock_name = command.id if lock_name is None else lock_name
        self._file_lock = FileLock(lock_file_path(lock_dir, self.lock_name))

    @property
    def id(self) -> str:
        return self.command.id

    @property
    def description(self) -> str:
        return self.command.description

    @property
    def lock_path(self) -> Path:
        """Path of the lock file used by this command."""
        return self._file_lock.path

    def flag_definitions(self) -> FlagDefinitionMap:
        return self.command.flag_definitions()

    def validate_flags(self, flags: ParsedFlags) -> None:
        self.command.validate_flags(flags)

    def lock(self) -> bool:
        """
        Try to take the lock.

        Returns
        -------
        bool
            True if acquired, False if another holder is running.

        Raises
        ------
        LockInfrastructureError
            On filesystem failures (missing directory, permissions, I/O).
        """
        try:
            acquired = self._file_lock.acquire()
        except OSError as exc:
            raise LockInfrastructureError(
                self.id, f"failed to acquire lock {self.lock_path}: {exc}"
            ) from exc
        if acquired:
            logger.debug("%s: acquired lock %s", self.id, self.lock_path)
        return acquired

    def unlock(self) -> bool:
        """
        Release the lock. Safe to call when the lock is not held, or is held
        by another thread.

        Raises
        ------
        LockInfrastructureError
            If the lock file could not be removed or unlocked.
        """
        try:
            released = self._file_lock.release()
        except OSError as exc:
            raise LockInfrastructureError(
                self.id, f"failed to release lock {self.lock_path}: {exc}"
            ) from exc
        if released:
            logger.debug("%s: released lock %s", self.id, self.lock_path)
        return released

    def exec(self, flags: ParsedFlags, sink: TextIO) -> None:
        """
        Run the wrapped command while holding the lock.

        Raises
        ------
        LockContention
            If another holder has the lock; the wrapped command is not run.
        LockInfrastructureError
            If the lock could not be taken.
        """
        if not self.lock():
            logger.info("%s: lock %s is held elsewhere, skipping", self.id, self.lock_path)
            raise LockContention(self.id)

        try:
            self.command.exec(flags, sink)
        finally:
            try:
                self.unlock()
            except LockInfrastructureError as exc:
                # Must not mask the wrapped command's own outcome.
                logger.warning("%s", exc)
