"""GitLab integration through the glab CLI"""

import os
import re
from typing import TYPE_CHECKING, List, Optional, Union

from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.providers.base import PullRequestTracker, TicketTracker
from git_worktree_keeper.providers.cli import run_json_command

if TYPE_CHECKING:
    from git_worktree_keeper.config import Config

logger = get_logger(__name__)

GLAB = "glab"

# glab errors that mean the issue or merge request does not exist
NOT_FOUND = re.compile(
    r"no (?:open )?merge requests? (?:available|found)|404 (?:issue |merge request )?not found",
    re.IGNORECASE,
)


class GitLabProvider(TicketTracker, PullRequestTracker):
    """Issue and merge request state via ``glab ... --output json``.

    ``gitlab_server`` selects a self-hosted instance (exported as GITLAB_HOST)
    and ``gitlab_project`` pins the project instead of inferring it from the
    working directory's remote.
    """

    name = "gitlab"

    def __init__(self, repo_path: str, config: Union["Config", dict]):
        self.repo_path = repo_path
        self.server = config.get("gitlab_server") or ""
        self.project = config.get("gitlab_project") or ""

    def _env(self) -> Optional[dict]:
        if not self.server:
            return None
        env = dict(os.environ)
        env["GITLAB_HOST"] = self.server
        return env

    def _glab(self, args: List[str], not_found: Optional["re.Pattern"] = None):
        if self.project:
            args = [*args, "--repo", self.project]
        return run_json_command(
            self.name, GLAB, args, cwd=self.repo_path, env=self._env(), not_found=not_found
        )

    def _view_issue(self, issue_id: str) -> dict:
        return self._glab(["issue", "view", str(issue_id).lstrip("#"), "--output", "json"], NOT_FOUND) or {}

    def _list_merge_requests(self, search: str, state_flag: Optional[str]) -> list:
        args = ["mr", "list", "--search", search, "--output", "json"]
        if state_flag:
            args.append(state_flag)
        return self._glab(args) or []

    def _linked_merge_requests(self, issue_id: str, state_flag: Optional[str]) -> list:
        """Merge requests mentioning ``#<issue>`` in their title or description."""
        number = str(issue_id).lstrip("#")
        pattern = re.compile(rf"#{number}(?![0-9])")
        linked = []
        for mr in self._list_merge_requests(f"#{number}", state_flag):
            text = f"{mr.get('title') or ''}\n{mr.get('description') or ''}"
            if pattern.search(text):
                linked.append(mr)
        return linked

    def is_issue_closed(self, issue_id: str) -> bool:
        issue = self._view_issue(issue_id)
        return (issue.get("state") or "").lower() == "closed"

    def is_issue_merged_or_completed(self, issue_id: str) -> bool:
        """Closed, with a merged merge request that references it."""
        if not self.is_issue_closed(issue_id):
            return False
        return bool(self._linked_merge_requests(issue_id, "--merged"))

    def has_open_linked_pull_request(self, issue_id: str) -> bool:
        # glab lists open merge requests by default
        return bool(self._linked_merge_requests(issue_id, None))

    def is_pull_request_merged(self, branch_or_id: str) -> bool:
        """Check a merge request by iid or by source branch."""
        ref = str(branch_or_id).lstrip("!")
        mr = self._glab(["mr", "view", ref, "--output", "json"], NOT_FOUND) or {}
        merged = (mr.get("state") or "").lower() == "merged"
        if merged:
            logger.debug(f"[GitLab] Merge request for {ref} is merged")
        return merged
