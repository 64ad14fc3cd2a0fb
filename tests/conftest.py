"""Pytest fixtures for git-worktree-keeper tests"""
import tempfile
from pathlib import Path
from unittest.mock import Mock

import git
import pytest

from git_worktree_keeper.constants import SECONDS_PER_DAY
from git_worktree_keeper.models.worktree import IssueReference, Worktree
from git_worktree_keeper.providers.base import PullRequestTracker, TicketTracker
from git_worktree_keeper.services.git.executor import CommandExecutor
from git_worktree_keeper.services.git.locks import LockInspector
from git_worktree_keeper.services.git.operations import GitOperations
from git_worktree_keeper.services.git.worktrees import WorktreeService

NOW = 1_700_000_000.0


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository with one commit on main."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()
    repo.config_writer().set_value("commit", "gpgsign", "false").release()

    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    repo.git.branch("-M", "main")
    repo.create_remote("origin", "git@github.com:test/test-repo.git")

    yield repo

    repo.close()


@pytest.fixture
def pushed_repo(git_repo):
    """Repository whose main branch also exists as origin/main."""
    git_repo.git.update_ref("refs/remotes/origin/main", "main")
    return git_repo


@pytest.fixture
def commit():
    """Return a function making an empty commit in a working tree."""

    def _commit(path, message="Work in progress"):
        git.Git(str(path)).commit("--allow-empty", "--no-verify", "-m", message)
        return git.Git(str(path)).rev_parse("HEAD")

    return _commit


@pytest.fixture
def mock_lock_inspector():
    inspector = Mock(spec=LockInspector)
    inspector.scan.return_value = []
    return inspector


@pytest.fixture
def executor(git_repo, mock_lock_inspector):
    """Command executor bound to the test repository that never really sleeps."""
    return CommandExecutor(
        git_repo.working_dir, lock_inspector=mock_lock_inspector, sleep=Mock()
    )


@pytest.fixture
def git_operations(executor):
    return GitOperations(executor)


@pytest.fixture
def worktree_service(executor, git_operations):
    return WorktreeService(executor, git_operations)


@pytest.fixture
def mock_config():
    """Create a mock configuration dictionary."""
    return {
        "verbose": False,
        "debug": False,
        "stale_days": 4,
        "aging_days": 1,
        "dry_run": False,
        "force": False,
        "github_token": "test_token_for_testing",
        "run_hooks": False,
    }


@pytest.fixture
def issue_tracker():
    """A GitHub issue tracker reporting every issue as open."""
    tracker = Mock(spec=TicketTracker)
    tracker.name = "github"
    tracker.is_issue_closed.return_value = False
    tracker.is_issue_merged_or_completed.return_value = False
    tracker.has_open_linked_pull_request.return_value = False
    return tracker


@pytest.fixture
def pr_tracker():
    """A GitHub pull request tracker reporting nothing as merged."""
    tracker = Mock(spec=PullRequestTracker)
    tracker.name = "github"
    tracker.is_pull_request_merged.return_value = False
    return tracker


@pytest.fixture
def make_worktree():
    """Build Worktree models aged relative to NOW."""

    def _make(
        name="feature",
        age_days=0.5,
        unpushed=0,
        head="a" * 40,
        branch=None,
        issue=None,
        issue_kind="github",
    ):
        return Worktree(
            path=f"/worktrees/{name}",
            branch_name=f"work/{name}" if branch is None else branch,
            head_commit=head,
            last_activity_time=None if age_days is None else NOW - age_days * SECONDS_PER_DAY,
            unpushed_count=unpushed,
            linked_issue=IssueReference(issue, issue_kind) if issue else None,
        )

    return _make


@pytest.fixture
def now():
    return NOW
