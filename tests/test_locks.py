"""Tests for lock file inspection"""
import os
from pathlib import Path

import pytest

from git_worktree_keeper.exceptions import LockInspectionError, NotARepositoryError
from git_worktree_keeper.models.worktree import LockFile
from git_worktree_keeper.services.git.locks import (
    LockInspector,
    format_lock_warning,
    is_process_alive,
    read_lock_owner_pid,
    resolve_git_dir,
)

UNUSED_PID = 99_999_999


class TestProcessLiveness:
    """Test the process existence probe."""

    def test_own_process_is_alive(self):
        """Test the current process is reported alive."""
        assert is_process_alive(os.getpid()) is True

    def test_implausible_pid_is_dead(self):
        """Test a pid far above any real pid is reported dead."""
        assert is_process_alive(UNUSED_PID) is False

    def test_overflowing_pid_is_dead(self):
        """Test a pid too large for the OS is reported dead."""
        assert is_process_alive(2 ** 70) is False

    @pytest.mark.parametrize("pid", [0, -1])
    def test_unknown_pid_assumed_alive(self, pid):
        """Test a missing pid is never treated as a dead owner."""
        assert is_process_alive(pid) is True


class TestReadLockOwnerPid:
    """Test pid parsing from lock file content."""

    def test_first_numeric_token(self, temp_dir):
        lock = temp_dir / "index.lock"
        lock.write_text("pid 1234 started\n")
        assert read_lock_owner_pid(str(lock)) == 1234

    def test_no_numeric_token(self, temp_dir):
        lock = temp_dir / "index.lock"
        lock.write_text("not a pid\n")
        assert read_lock_owner_pid(str(lock)) == -1

    def test_empty_file(self, temp_dir):
        lock = temp_dir / "index.lock"
        lock.write_text("")
        assert read_lock_owner_pid(str(lock)) == -1

    def test_missing_file(self, temp_dir):
        assert read_lock_owner_pid(str(temp_dir / "gone.lock")) == -1


class TestResolveGitDir:
    """Test locating the repository state directory."""

    def test_primary_checkout(self, git_repo):
        assert resolve_git_dir(git_repo.working_dir) == os.path.join(git_repo.working_dir, ".git")

    def test_linked_worktree_resolves_to_common_dir(self, git_repo, temp_dir):
        """Test the .git file indirection of a linked worktree is followed."""
        worktree_path = temp_dir / "linked"
        git_repo.git.worktree("add", "-b", "work/linked", str(worktree_path), "main")

        resolved = resolve_git_dir(str(worktree_path))

        assert os.path.realpath(resolved) == os.path.realpath(
            os.path.join(git_repo.working_dir, ".git")
        )

    def test_not_a_repository(self, temp_dir):
        with pytest.raises(NotARepositoryError):
            resolve_git_dir(str(temp_dir))


class TestLockInspectorScan:
    """Test scanning for lock files."""

    def test_no_locks(self, git_repo):
        assert LockInspector().scan(git_repo.working_dir) == []

    def test_lock_owned_by_current_process(self, git_repo):
        """Test a lock holding our own pid is reported with a live owner."""
        lock = Path(git_repo.working_dir) / ".git" / "index.lock"
        lock.write_text(f"{os.getpid()}\n")

        lock_files = LockInspector().scan(git_repo.working_dir)

        assert len(lock_files) == 1
        assert lock_files[0].path == str(lock)
        assert lock_files[0].owner_process_id == os.getpid()
        assert lock_files[0].owner_alive is True
        assert lock_files[0].is_stale is False

    def test_lock_with_dead_owner(self, git_repo):
        """Test a lock holding an unused pid is stale."""
        lock = Path(git_repo.working_dir) / ".git" / "refs" / "heads" / "main.lock"
        lock.write_text(f"{UNUSED_PID}\n")

        lock_files = LockInspector().scan(git_repo.working_dir)

        assert [lf.owner_alive for lf in lock_files] == [False]
        assert LockInspector.stale_locks(lock_files) == lock_files

    def test_age_from_clock(self, git_repo):
        """Test lock age is measured against the injected clock."""
        lock = Path(git_repo.working_dir) / ".git" / "config.lock"
        lock.write_text("")
        mtime = os.stat(lock).st_mtime

        inspector = LockInspector(liveness_probe=lambda pid: True, clock=lambda: mtime + 90)
        lock_files = inspector.scan(git_repo.working_dir)

        assert lock_files[0].age == pytest.approx(90)
        assert lock_files[0].owner_process_id == -1

    def test_non_lock_files_ignored(self, git_repo):
        (Path(git_repo.working_dir) / ".git" / "lockfile.txt").write_text("1")
        assert LockInspector().scan(git_repo.working_dir) == []


class TestRemoveStale:
    """Test stale lock removal."""

    def test_remove_dead_owner_lock(self, git_repo):
        lock = Path(git_repo.working_dir) / ".git" / "index.lock"
        lock.write_text(f"{UNUSED_PID}\n")
        inspector = LockInspector()
        (lock_file,) = inspector.scan(git_repo.working_dir)

        assert inspector.remove_stale(lock_file) is True
        assert not lock.exists()

    def test_refuses_live_owner(self, git_repo):
        """Test a lock whose owner is alive is never removed."""
        lock = Path(git_repo.working_dir) / ".git" / "index.lock"
        lock.write_text(f"{os.getpid()}\n")
        inspector = LockInspector()
        (lock_file,) = inspector.scan(git_repo.working_dir)

        with pytest.raises(LockInspectionError):
            inspector.remove_stale(lock_file)
        assert lock.exists()

    def test_already_gone(self, temp_dir):
        lock_file = LockFile(str(temp_dir / "index.lock"), age=1, owner_process_id=UNUSED_PID, owner_alive=False)
        assert LockInspector().remove_stale(lock_file) is True


class TestFormatLockWarning:
    """Test the contention diagnostic text."""

    def test_no_locks(self):
        assert format_lock_warning([]) is None

    def test_lists_every_lock(self):
        locks = [
            LockFile("/r/.git/index.lock", age=12, owner_process_id=42, owner_alive=True),
            LockFile("/r/.git/HEAD.lock", age=3600, owner_process_id=UNUSED_PID, owner_alive=False),
        ]

        warning = format_lock_warning(locks)

        assert "2 lock file(s) (1 stale)" in warning
        assert "/r/.git/index.lock (age: 12s, pid: 42, active)" in warning
        assert "HEAD.lock" in warning
        assert "--remove-stale-locks" in warning
