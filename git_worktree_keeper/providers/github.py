"""GitHub API integration"""

import re
from typing import TYPE_CHECKING, Optional, Union
from urllib.parse import urlparse

from github import Auth, Github, GithubException, UnknownObjectException

from git_worktree_keeper.constants import CLOSING_KEYWORDS
from git_worktree_keeper.exceptions import ProviderUnavailableError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.providers.base import PullRequestTracker, TicketTracker

if TYPE_CHECKING:
    from github.Repository import Repository
    from git_worktree_keeper.config import Config

logger = get_logger(__name__)


def parse_github_repo(remote_url: Optional[str]) -> Optional[str]:
    """Return ``org/repo`` for a GitHub remote URL, None for anything else."""
    if not remote_url or "github.com" not in remote_url:
        return None

    if remote_url.startswith("git@"):
        # SSH URL format (git@github.com:org/repo.git)
        path = remote_url.split("github.com:", 1)[-1]
    else:
        # HTTPS URL format (https://github.com/org/repo.git)
        path = urlparse(remote_url).path

    path = path.strip("/")
    if path.endswith(".git"):
        path = path[:-4]
    return path if path.count("/") == 1 else None


def closing_reference_pattern(issue_number: str) -> "re.Pattern":
    """Regex matching GitHub closing keywords (close, fixes, resolved...) followed by #n."""
    return re.compile(rf"\b(?:{CLOSING_KEYWORDS}):?\s+#{issue_number}\b", re.IGNORECASE)


class GitHubProvider(TicketTracker, PullRequestTracker):
    """Issue and pull request state from the GitHub API (PyGithub).

    The API client is created on first use so building the provider never
    touches the network.
    """

    name = "github"

    def __init__(self, remote_url: Optional[str], config: Union["Config", dict]):
        self.config = config
        self.github_token = config.get("github_token")
        self.github_repo = parse_github_repo(remote_url)
        self.github: Optional[Github] = None
        self.gh_repo: Optional["Repository"] = None
        self._issues: dict = {}

    def setup_github_api(self) -> "Repository":
        """Create the API client and resolve the repository.

        Raises:
            ProviderUnavailableError: no GitHub remote, no token, or the API refused
        """
        if self.gh_repo is not None:
            return self.gh_repo

        if not self.github_repo:
            raise ProviderUnavailableError(self.name, "setup", "origin is not a GitHub remote")
        if not self.github_token:
            raise ProviderUnavailableError(
                self.name, "setup", "no GitHub token (set GITHUB_TOKEN)"
            )

        try:
            self.github = Github(auth=Auth.Token(self.github_token))
            self.gh_repo = self.github.get_repo(self.github_repo)
        except (GithubException, OSError) as e:
            raise ProviderUnavailableError(self.name, "setup", str(e))

        logger.debug(f"[GitHub] GitHub integration enabled for: {self.github_repo}")
        return self.gh_repo

    @staticmethod
    def _issue_number(issue_id: str) -> int:
        try:
            return int(str(issue_id).lstrip("#"))
        except ValueError:
            raise ProviderUnavailableError("github", "get_issue", f"'{issue_id}' is not an issue number")

    def clear_cache(self) -> None:
        self._issues.clear()

    def _get_issue(self, issue_id: str):
        """Fetch an issue once per classification pass; None when it does not exist."""
        repo = self.setup_github_api()
        number = self._issue_number(issue_id)
        if number in self._issues:
            return self._issues[number]
        try:
            issue = repo.get_issue(number)
        except UnknownObjectException:
            logger.debug(f"[GitHub] Issue #{number} not found")
            issue = None
        except (GithubException, OSError) as e:
            raise ProviderUnavailableError(self.name, "get_issue", f"#{number}: {e}")
        self._issues[number] = issue
        return issue

    def _search_linked_pull_requests(self, issue_id: str, state: str):
        """Pull requests in ``state`` whose title or body closes the issue."""
        self.setup_github_api()
        number = self._issue_number(issue_id)
        pattern = closing_reference_pattern(str(number))
        query = f"repo:{self.github_repo} is:pr {state} #{number}"
        try:
            for result in self.github.search_issues(query):
                text = f"{result.title or ''}\n{result.body or ''}"
                if pattern.search(text):
                    logger.debug(f"[GitHub] PR #{result.number} references #{number}")
                    yield result
        except (GithubException, OSError) as e:
            raise ProviderUnavailableError(self.name, "search_issues", str(e))

    def is_issue_closed(self, issue_id: str) -> bool:
        issue = self._get_issue(issue_id)
        return issue is not None and issue.state == "closed"

    def is_issue_merged_or_completed(self, issue_id: str) -> bool:
        """Closed as completed, or closed by a merged pull request."""
        issue = self._get_issue(issue_id)
        if issue is None or issue.state != "closed":
            return False
        if (getattr(issue, "state_reason", None) or "").lower() == "completed":
            return True
        return any(True for _ in self._search_linked_pull_requests(issue_id, "is:merged"))

    def has_open_linked_pull_request(self, issue_id: str) -> bool:
        return any(True for _ in self._search_linked_pull_requests(issue_id, "is:open"))

    def is_pull_request_merged(self, branch_or_id: str) -> bool:
        """Check a PR number, or any merged PR whose head is the branch."""
        repo = self.setup_github_api()
        ref = str(branch_or_id).lstrip("#")
        try:
            if ref.isdigit():
                return bool(repo.get_pull(int(ref)).merged)

            owner = self.github_repo.split("/")[0]
            pulls = repo.get_pulls(state="closed", head=f"{owner}:{ref}")
            for pr in pulls:
                if pr.merged:
                    logger.debug(f"[GitHub] Found merged PR #{pr.number} for {ref}")
                    return True
            return False
        except UnknownObjectException:
            logger.debug(f"[GitHub] No pull request {ref}")
            return False
        except (GithubException, OSError) as e:
            raise ProviderUnavailableError(self.name, "get_pulls", f"{ref}: {e}")
