"""Tests for WorktreeService against real repositories"""
import os
import shutil
from unittest.mock import Mock

import pytest

from git_worktree_keeper.exceptions import (
    BranchCollisionError,
    BranchNotFoundError,
    GitOperationError,
    PathCollisionError,
    RemovalFailedError,
)
from git_worktree_keeper.models.worktree import IssueReference
from git_worktree_keeper.services.git.worktrees import WorktreeService, latest_file_mtime


class TestWorktreeList:
    """Test listing worktrees."""

    def test_primary_checkout_excluded(self, worktree_service):
        assert worktree_service.list() == []

    def test_lists_linked_worktree(self, worktree_service, git_repo, temp_dir):
        path = temp_dir / "wt-42"
        git_repo.git.worktree("add", "-b", "work/42-fix-login", str(path), "main")

        (worktree,) = worktree_service.list(tracker_kind="github")

        assert worktree.path == str(path)
        assert worktree.branch_name == "work/42-fix-login"
        assert worktree.head_commit == git_repo.head.commit.hexsha
        assert worktree.linked_issue == IssueReference("42", "github")
        assert worktree.last_activity_time == pytest.approx(git_repo.head.commit.committed_date)
        assert worktree.is_orphaned is False

    def test_detached_worktree(self, worktree_service, git_repo, temp_dir):
        path = temp_dir / "detached"
        git_repo.git.worktree("add", "--detach", str(path), "main")

        (worktree,) = worktree_service.list()

        assert worktree.is_detached is True
        assert worktree.unpushed_count == 0
        assert worktree.display_ref == git_repo.head.commit.hexsha[:7]

    def test_orphaned_worktree_skipped(self, worktree_service, git_repo, temp_dir):
        """Test a registration whose directory vanished is only listed on request."""
        path = temp_dir / "vanished"
        git_repo.git.worktree("add", "-b", "work/vanished", str(path), "main")
        shutil.rmtree(path)

        assert worktree_service.list() == []
        (orphan,) = worktree_service.list(include_orphaned=True)
        assert orphan.is_orphaned is True
        assert orphan.branch_name == "work/vanished"

    def test_get_by_branch(self, worktree_service, git_repo, temp_dir):
        path = temp_dir / "lookup"
        git_repo.git.worktree("add", "-b", "work/lookup", str(path), "main")

        assert worktree_service.get_by_branch("work/lookup").path == str(path)
        assert worktree_service.get_by_branch("main").is_main is True
        assert worktree_service.get_by_branch("work/none") is None


class TestUnpushedCount:
    """Test divergence computation."""

    def test_no_upstream_counts_local_commits(self, worktree_service, pushed_repo, temp_dir, commit):
        """Test three commits that exist nowhere else count as three."""
        path = temp_dir / "local-work"
        pushed_repo.git.worktree("add", "-b", "work/local", str(path), "main")
        for i in range(3):
            commit(path, f"commit {i}")

        (worktree,) = worktree_service.list()

        assert worktree.unpushed_count == 3

    def test_upstream_with_nothing_ahead(self, worktree_service, pushed_repo, temp_dir, commit):
        path = temp_dir / "tracked"
        pushed_repo.git.worktree("add", "-b", "work/tracked", str(path), "main")
        commit(path, "pushed work")
        pushed_repo.git.update_ref("refs/remotes/origin/work/tracked", "work/tracked")
        pushed_repo.git.branch("--set-upstream-to=origin/work/tracked", "work/tracked")

        (worktree,) = worktree_service.list()

        assert worktree_service.get_upstream(str(path)) == "origin/work/tracked"
        assert worktree.unpushed_count == 0

    def test_upstream_with_commits_ahead(self, worktree_service, pushed_repo, temp_dir, commit):
        path = temp_dir / "ahead"
        pushed_repo.git.worktree("add", "-b", "work/ahead", str(path), "main")
        pushed_repo.git.update_ref("refs/remotes/origin/work/ahead", "work/ahead")
        pushed_repo.git.branch("--set-upstream-to=origin/work/ahead", "work/ahead")
        commit(path, "one")
        commit(path, "two")

        (worktree,) = worktree_service.list()

        assert worktree.unpushed_count == 2

    def test_fresh_branch_of_pushed_main(self, worktree_service, pushed_repo, temp_dir):
        path = temp_dir / "fresh"
        pushed_repo.git.worktree("add", "-b", "work/fresh", str(path), "main")

        (worktree,) = worktree_service.list()

        assert worktree.unpushed_count == 0

    def test_count_failure_gives_zero(self):
        """Test an unanswerable count (e.g. no commits yet) is zero, not an error."""
        executor = Mock()
        executor.try_execute.side_effect = [
            ("", GitOperationError("rev-parse")),
            ("", GitOperationError("rev-list")),
        ]
        service = WorktreeService(executor, git_operations=Mock())

        assert service.get_unpushed_count("/wt", "work/empty") == 0


class TestLastActivity:
    """Test activity timestamps."""

    def test_falls_back_to_file_mtime(self, temp_dir):
        """Test a worktree without commits uses the newest file time."""
        (temp_dir / "a.txt").write_text("a")
        os.utime(temp_dir / "a.txt", (1000, 1000))
        (temp_dir / "sub").mkdir()
        (temp_dir / "sub" / "b.txt").write_text("b")
        os.utime(temp_dir / "sub" / "b.txt", (2000, 2000))

        executor = Mock()
        executor.try_execute.return_value = ("", GitOperationError("log"))
        service = WorktreeService(executor, git_operations=Mock())

        assert service.get_last_activity_time(str(temp_dir)) == 2000

    def test_git_directory_ignored(self, temp_dir):
        (temp_dir / "a.txt").write_text("a")
        os.utime(temp_dir / "a.txt", (1000, 1000))
        (temp_dir / ".git").mkdir()
        (temp_dir / ".git" / "index").write_text("x")
        os.utime(temp_dir / ".git" / "index", (5000, 5000))

        assert latest_file_mtime(str(temp_dir)) == 1000

    def test_empty_directory_uses_directory_time(self, temp_dir):
        empty = temp_dir / "empty"
        empty.mkdir()
        os.utime(empty, (3000, 3000))

        assert latest_file_mtime(str(empty)) == 3000


class TestWorktreeCreate:
    """Test worktree creation."""

    def test_create_new_branch(self, worktree_service, git_repo, git_operations, temp_dir):
        path = temp_dir / "nested" / "new-wt"

        worktree = worktree_service.create(str(path), "work/new", base_branch="main")

        assert path.is_dir()
        assert worktree.branch_name == "work/new"
        assert worktree.path == str(path)
        assert git_operations.branch_exists("work/new")

    def test_create_existing_branch(self, worktree_service, git_repo, temp_dir):
        git_repo.git.branch("work/existing", "main")
        path = temp_dir / "existing"

        worktree = worktree_service.create(str(path), "work/existing")

        assert worktree.branch_name == "work/existing"
        assert worktree.head_commit == git_repo.head.commit.hexsha

    def test_branch_already_has_worktree(self, worktree_service, git_repo, temp_dir):
        """Test the colliding worktree path is reported."""
        first = temp_dir / "first"
        worktree_service.create(str(first), "work/dup", base_branch="main")

        with pytest.raises(BranchCollisionError) as exc_info:
            worktree_service.create(str(temp_dir / "second"), "work/dup")

        assert exc_info.value.existing_path == str(first)
        assert str(first) in str(exc_info.value)
        assert not (temp_dir / "second").exists()

    def test_path_exists(self, worktree_service, temp_dir):
        taken = temp_dir / "taken"
        taken.mkdir()

        with pytest.raises(PathCollisionError):
            worktree_service.create(str(taken), "work/taken", base_branch="main")

    def test_existing_branch_mode_missing_branch(self, worktree_service, temp_dir):
        with pytest.raises(BranchNotFoundError):
            worktree_service.create(str(temp_dir / "missing"), "work/missing")
        assert not (temp_dir / "missing").exists()

    def test_new_branch_mode_branch_exists(self, worktree_service, git_repo, temp_dir):
        git_repo.git.branch("work/there", "main")

        with pytest.raises(BranchCollisionError) as exc_info:
            worktree_service.create(str(temp_dir / "there"), "work/there", base_branch="main")

        assert exc_info.value.existing_path is None

    def test_failed_add_leaves_no_directories(self, worktree_service, temp_dir):
        """Test base directories made for a worktree are removed when git fails."""
        path = temp_dir / "new-base" / "deeper" / "wt"

        with pytest.raises(GitOperationError):
            worktree_service.create(str(path), "work/orphan-base", base_branch="no-such-base")

        assert not (temp_dir / "new-base").exists()
        assert temp_dir.is_dir()

    def test_failed_add_keeps_existing_parent(self, worktree_service, temp_dir):
        base = temp_dir / "existing-base"
        base.mkdir()

        with pytest.raises(GitOperationError):
            worktree_service.create(str(base / "wt"), "work/kept-base", base_branch="no-such-base")

        assert base.is_dir()


class TestWorktreeRemove:
    """Test removal, branch deletion and pruning."""

    def test_remove_with_branch(self, worktree_service, git_operations, temp_dir, commit):
        path = temp_dir / "doomed"
        worktree_service.create(str(path), "work/doomed", base_branch="main")
        (path / "dirty.txt").write_text("uncommitted")
        commit(path, "unmerged")

        branch_deleted = worktree_service.remove(str(path), delete_branch=True)

        assert branch_deleted is True
        assert not path.exists()
        assert not git_operations.branch_exists("work/doomed")

    def test_remove_keeps_branch_by_default(self, worktree_service, git_operations, temp_dir):
        path = temp_dir / "keep-branch"
        worktree_service.create(str(path), "work/keep", base_branch="main")

        assert worktree_service.remove(str(path)) is False
        assert git_operations.branch_exists("work/keep")

    def test_remove_unknown_path(self, worktree_service, temp_dir):
        with pytest.raises(RemovalFailedError):
            worktree_service.remove(str(temp_dir / "not-a-worktree"))

    def test_branch_still_checked_out_is_kept(self, worktree_service, git_operations, temp_dir):
        worktree_service.create(str(temp_dir / "busy"), "work/busy", base_branch="main")

        assert worktree_service.delete_branch_if_unreferenced("work/busy") is False
        assert git_operations.branch_exists("work/busy")

    def test_delete_missing_branch(self, worktree_service):
        assert worktree_service.delete_branch_if_unreferenced("work/never") is False

    def test_default_branch_never_deleted(self, worktree_service, git_repo, git_operations):
        git_repo.git.checkout("-b", "develop")

        assert worktree_service.delete_branch_if_unreferenced("main") is False
        assert git_operations.branch_exists("main")

    def test_prune_counts_orphans(self, worktree_service, temp_dir):
        for name in ("one", "two"):
            worktree_service.create(str(temp_dir / name), f"work/{name}", base_branch="main")
        shutil.rmtree(temp_dir / "one")

        assert worktree_service.prune() == 1
        assert [w.branch_name for w in worktree_service.list(include_orphaned=True)] == ["work/two"]

    def test_prune_nothing(self, worktree_service):
        assert worktree_service.prune() == 0
