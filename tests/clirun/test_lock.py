"""Tests for lock identity derivation, the file try-lock and LockableCommand."""

import os
from pathlib import Path
import subprocess
import sys
import threading

import pytest

from clirun.errors import LockContention, LockInfrastructureError
from clirun.flags import ParsedFlags
from clirun.lock import FileLock, LockableCommand, lock_file_path, normalize_lock_name
from clirun.pipeline import run_command

SRC_ROOT = Path(__file__).resolve().parents[2] / "src"


# ==================================================================================================
#                                   IDENTITY
# ==================================================================================================

def test_normalize_lock_name_collapses_non_alphanumeric_runs() -> None:
    """Each run of separators becomes one dash."""
    assert normalize_lock_name("say hello//dynamic") == "say-hello-dynamic"
    assert normalize_lock_name("plain") == "plain"


def test_lock_file_path_is_deterministic(tmp_path: Path) -> None:
    """Same name and directory always map to the same file."""
    first = lock_file_path(tmp_path, "nightly:report")
    second = lock_file_path(str(tmp_path), "nightly:report")

    assert first == second
    assert first.parent == tmp_path
    assert first.name.startswith("clirun-command-nightly-report-")
    assert first.name.endswith(".lock")


def test_names_normalizing_identically_do_not_collide(tmp_path: Path) -> None:
    """The hash suffix separates names with the same normalized form."""
    assert lock_file_path(tmp_path, "a b") != lock_file_path(tmp_path, "a_b")


def test_long_names_stay_bounded(tmp_path: Path) -> None:
    """Very long names still produce filesystem-safe file names."""
    path = lock_file_path(tmp_path, "x" * 1000)

    assert len(path.name) < 255


def test_lock_file_path_rejects_empty_name(tmp_path: Path) -> None:
    """A lock needs a logical name."""
    with pytest.raises(ValueError, match="non-empty"):
        lock_file_path(tmp_path, "")


# ==================================================================================================
#                                   FILE LOCK
# ==================================================================================================

def test_second_instance_sees_contention_until_release(tmp_path: Path) -> None:
    """Acquire, contend, release, then re-acquire."""
    path = tmp_path / "test-command.lock"
    first = FileLock(path)
    second = FileLock(path)

    assert first.acquire() is True
    assert path.exists()
    assert second.acquire() is False

    assert first.release() is True
    assert not path.exists()

    assert second.acquire() is True
    assert second.release() is True


def test_same_instance_is_not_reentrant(tmp_path: Path) -> None:
    """A held instance reports contention to any further acquire."""
    lock = FileLock(tmp_path / "x.lock")

    assert lock.acquire() is True
    assert lock.acquire() is False
    assert lock.locked is True
    lock.release()


def test_release_without_acquire_is_noop(tmp_path: Path) -> None:
    """Unconditional cleanup paths may release an unheld lock."""
    lock = FileLock(tmp_path / "x.lock")

    assert lock.release() is False
    assert lock.release() is False


def test_stale_lock_file_is_reacquired(tmp_path: Path) -> None:
    """A file left behind by a dead holder does not block new holders."""
    path = tmp_path / "stale.lock"
    path.write_text("12345\n", encoding="ascii")

    lock = FileLock(path)
    assert lock.acquire() is True
    assert path.read_text(encoding="ascii") == f"{os.getpid()}\n"
    lock.release()


def test_missing_directory_is_infrastructure_error(tmp_path: Path) -> None:
    """A lock directory that does not exist is not contention."""
    lock = FileLock(tmp_path / "missing" / "x.lock")

    with pytest.raises(FileNotFoundError):
        lock.acquire()
    assert lock.locked is False


def test_context_manager_releases(tmp_path: Path) -> None:
    """`with` releases on exit."""
    path = tmp_path / "ctx.lock"

    with FileLock(path) as acquired:
        assert acquired is True
        assert path.exists()

    assert not path.exists()


def test_release_from_another_thread_keeps_lock(tmp_path: Path) -> None:
    """Only the acquiring thread can release a shared instance."""
    path = tmp_path / "owned.lock"
    lock = FileLock(path)
    results: list[bool] = []

    assert lock.acquire() is True
    other = threading.Thread(target=lambda: results.append(lock.release()))
    other.start()
    other.join(timeout=10)

    assert results == [False]
    assert lock.locked is True
    assert path.exists()
    assert FileLock(path).acquire() is False

    assert lock.release() is True
    assert not path.exists()


def test_repeatedly_replaced_file_raises_oserror(tmp_path: Path, monkeypatch) -> None:
    """Exhausting the retry budget is a failure, not contention."""
    path = tmp_path / "churn.lock"
    monkeypatch.setattr(FileLock, "_is_current_file", lambda self, fd: False)
    lock = FileLock(path)

    with pytest.raises(OSError, match="replaced"):
        lock.acquire()
    assert lock.locked is False


def test_lock_is_exclusive_across_processes(tmp_path: Path) -> None:
    """Another process observes a clean "not acquired" while we hold the lock."""
    path = tmp_path / "cross.lock"
    script = (
        "import sys\n"
        "from clirun.lock import FileLock\n"
        "print(FileLock(sys.argv[1]).acquire())\n"
    )
    env = dict(os.environ, PYTHONPATH=str(SRC_ROOT))

    def _acquire_in_child() -> str:
        result = subprocess.run(
            [sys.executable, "-c", script, str(path)],
            env=env,
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()

    holder = FileLock(path)
    assert holder.acquire() is True
    try:
        assert _acquire_in_child() == "False"
    finally:
        holder.release()

    assert _acquire_in_child() == "True"


# ==================================================================================================
#                                   LOCKABLE COMMAND
# ==================================================================================================

def test_lockable_delegates_identity_and_flags(make_command, tmp_path: Path) -> None:
    """The wrapper looks like the wrapped command to registry and pipeline."""
    inner = make_command(command_id="inner", command_description="Inner command")
    wrapped = LockableCommand(inner, tmp_path)

    assert wrapped.id == "inner"
    assert wrapped.description == "Inner command"
    assert wrapped.flag_definitions() == {}
    assert wrapped.lock_path == lock_file_path(tmp_path, "inner")


def test_lock_identity_is_stable_across_instances(make_command, tmp_path: Path) -> None:
    """Two wrappers with the same logical name share one lock file."""
    a = LockableCommand(make_command(command_id="a"), tmp_path, lock_name="shared")
    b = LockableCommand(make_command(command_id="b"), tmp_path, lock_name="shared")

    assert a.lock_path == b.lock_path


def test_exec_runs_body_and_removes_lock_file(make_command, tmp_path: Path, sink) -> None:
    """Successful exec leaves no lock behind."""
    inner = make_command()
    wrapped = LockableCommand(inner, tmp_path)

    wrapped.exec(ParsedFlags(), sink)

    assert inner.executed is True
    assert not wrapped.lock_path.exists()


def test_exec_releases_lock_when_body_raises(make_command, tmp_path: Path, sink) -> None:
    """The lock is released on the error path and the error propagates as is."""

    def _fail(flags, out) -> None:
        raise RuntimeError("boom")

    wrapped = LockableCommand(make_command(body=_fail), tmp_path)

    with pytest.raises(RuntimeError, match="boom"):
        wrapped.exec(ParsedFlags(), sink)

    assert not wrapped.lock_path.exists()
    assert wrapped.lock() is True
    wrapped.unlock()


def test_exec_under_contention_skips_body(make_command, tmp_path: Path, sink) -> None:
    """A held lock yields LockContention without touching the wrapped command."""
    holder = LockableCommand(make_command(), tmp_path)
    inner = make_command()
    contender = LockableCommand(inner, tmp_path)

    assert holder.lock() is True
    try:
        with pytest.raises(LockContention, match="command is locked"):
            contender.exec(ParsedFlags(), sink)
    finally:
        holder.unlock()

    assert inner.executed is False


def test_unlock_without_lock_is_safe(make_command, tmp_path: Path) -> None:
    """Cleanup code may unlock unconditionally."""
    wrapped = LockableCommand(make_command(), tmp_path)

    assert wrapped.unlock() is False


def test_lock_in_missing_directory_raises_infrastructure_error(make_command, tmp_path: Path, sink) -> None:
    """Filesystem failures are errors, not contention."""
    inner = make_command(command_id="job")
    wrapped = LockableCommand(inner, tmp_path / "does-not-exist")

    with pytest.raises(LockInfrastructureError) as info:
        wrapped.exec(ParsedFlags(), sink)

    assert info.value.command_id == "job"
    assert inner.executed is False


def test_unlock_from_losing_thread_keeps_holder_lock(make_command, tmp_path: Path) -> None:
    """A shared wrapper ignores unlock() from a thread that does not hold the lock."""
    wrapped = LockableCommand(make_command(command_id="shared"), tmp_path)
    outcomes: list[tuple[bool, bool]] = []

    def _lose() -> None:
        outcomes.append((wrapped.lock(), wrapped.unlock()))

    assert wrapped.lock() is True
    loser = threading.Thread(target=_lose)
    loser.start()
    loser.join(timeout=10)

    assert outcomes == [(False, False)]
    assert wrapped.lock_path.exists()
    assert wrapped.unlock() is True


def test_retry_exhaustion_is_infrastructure_error(make_command, tmp_path: Path, sink, monkeypatch) -> None:
    """A lock file that keeps being replaced is reported as a lock failure."""
    monkeypatch.setattr(FileLock, "_is_current_file", lambda self, fd: False)
    inner = make_command(command_id="churn")
    wrapped = LockableCommand(inner, tmp_path)

    with pytest.raises(LockInfrastructureError, match="replaced"):
        wrapped.exec(ParsedFlags(), sink)
    assert inner.executed is False


def test_concurrent_invocations_yield_one_success_and_one_contention(make_command, tmp_path: Path) -> None:
    """Two pipeline runs of the same logical command: one runs, one is skipped."""
    started = threading.Event()
    finish = threading.Event()

    def _slow(flags, out) -> None:
        started.set()
        assert finish.wait(timeout=10)

    slow_inner = make_command(command_id="slow-command", body=_slow)
    second_inner = make_command(command_id="slow-command")
    outcomes: dict[str, object] = {}

    def _first() -> None:
        try:
            run_command(LockableCommand(slow_inner, tmp_path), [], _NullSink())
            outcomes["first"] = "ok"
        except Exception as exc:  # noqa: BLE001
            outcomes["first"] = exc

    worker = threading.Thread(target=_first)
    worker.start()
    try:
        assert started.wait(timeout=10)
        with pytest.raises(LockContention):
            run_command(LockableCommand(second_inner, tmp_path), [], _NullSink())
    finally:
        finish.set()
        worker.join(timeout=10)

    assert outcomes["first"] == "ok"
    assert slow_inner.executed is True
    assert second_inner.executed is False


class _NullSink:
    """Write-only sink that discards output."""

    def write(self, text: str) -> int:
        return len(text)

    def flush(self) -> None:
        return None
