"""Issue and pull request tracker adapters."""

from typing import TYPE_CHECKING, Callable, Dict, Optional, Union

from git_worktree_keeper.logging_config import get_logger

from .base import PullRequestTracker, TicketTracker
from .github import GitHubProvider
from .gitlab import GitLabProvider
from .issue_ref import extract_issue_reference, extract_merge_request_number
from .jira import JiraProvider
from .linear import LinearProvider

if TYPE_CHECKING:
    from git_worktree_keeper.config import Config

logger = get_logger(__name__)

ConfigLike = Union["Config", dict]

ISSUE_TRACKERS: Dict[str, Callable[[ConfigLike, str, Optional[str]], TicketTracker]] = {
    "github": lambda config, repo_path, remote_url: GitHubProvider(remote_url, config),
    "gitlab": lambda config, repo_path, remote_url: GitLabProvider(repo_path, config),
    "jira": lambda config, repo_path, remote_url: JiraProvider(config),
    "linear": lambda config, repo_path, remote_url: LinearProvider(repo_path, config),
}

PULL_REQUEST_TRACKERS: Dict[str, Callable[[ConfigLike, str, Optional[str]], PullRequestTracker]] = {
    "github": lambda config, repo_path, remote_url: GitHubProvider(remote_url, config),
    "gitlab": lambda config, repo_path, remote_url: GitLabProvider(repo_path, config),
}


def guess_provider_from_remote(remote_url: Optional[str]) -> str:
    """Tracker kind implied by the origin URL ("" if it names neither host)."""
    if not remote_url:
        return ""
    if "github.com" in remote_url:
        return "github"
    if "gitlab" in remote_url:
        return "gitlab"
    return ""


def issue_tracker_kind(config: ConfigLike, remote_url: Optional[str] = None) -> str:
    return config.get("issue_provider") or guess_provider_from_remote(remote_url)


def pull_request_tracker_kind(config: ConfigLike, remote_url: Optional[str] = None) -> str:
    kind = config.get("pr_provider")
    if kind:
        return kind
    if config.get("issue_provider") == "gitlab":
        return "gitlab"
    return guess_provider_from_remote(remote_url)


def create_issue_tracker(
    config: ConfigLike, repo_path: str, remote_url: Optional[str] = None
) -> Optional[TicketTracker]:
    """Build the configured issue tracker, or None when none applies."""
    kind = issue_tracker_kind(config, remote_url)
    builder = ISSUE_TRACKERS.get(kind)
    if builder is None:
        logger.debug("No issue tracker configured")
        return None
    logger.debug(f"Using {kind} issue tracker")
    return builder(config, repo_path, remote_url)


def create_pull_request_tracker(
    config: ConfigLike, repo_path: str, remote_url: Optional[str] = None
) -> Optional[PullRequestTracker]:
    """Build the configured pull request tracker, or None when none applies."""
    kind = pull_request_tracker_kind(config, remote_url)
    builder = PULL_REQUEST_TRACKERS.get(kind)
    if builder is None:
        logger.debug("No pull request tracker configured")
        return None
    logger.debug(f"Using {kind} pull request tracker")
    return builder(config, repo_path, remote_url)


__all__ = [
    "TicketTracker",
    "PullRequestTracker",
    "GitHubProvider",
    "GitLabProvider",
    "JiraProvider",
    "LinearProvider",
    "create_issue_tracker",
    "create_pull_request_tracker",
    "issue_tracker_kind",
    "pull_request_tracker_kind",
    "extract_issue_reference",
    "extract_merge_request_number",
]
