"""Linear integration through the linear CLI"""

from typing import TYPE_CHECKING, Optional, Union

from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.providers.base import TicketTracker
from git_worktree_keeper.providers.cli import run_json_command

if TYPE_CHECKING:
    from git_worktree_keeper.config import Config

logger = get_logger(__name__)

LINEAR = "linear"

CLOSED_STATE_TYPES = {"completed", "canceled"}
COMPLETED_STATE_NAMES = {"done", "completed"}


class LinearProvider(TicketTracker):
    """Issue state from ``linear issue view <id> --json``."""

    name = "linear"

    def __init__(self, repo_path: Optional[str], config: Union["Config", dict]):
        self.repo_path = repo_path

    def _state(self, issue_id: str):
        """Return ``(state type, state name)`` for an issue, both lowercase."""
        issue = run_json_command(
            self.name, LINEAR, ["issue", "view", issue_id, "--json"], cwd=self.repo_path
        ) or {}
        state = issue.get("state") or {}
        state_type = (state.get("type") or "").lower()
        state_name = (state.get("name") or "").lower()
        logger.debug(f"[Linear] {issue_id} state: {state_name} ({state_type})")
        return state_type, state_name

    def is_issue_closed(self, issue_id: str) -> bool:
        state_type, _ = self._state(issue_id)
        return state_type in CLOSED_STATE_TYPES

    def is_issue_merged_or_completed(self, issue_id: str) -> bool:
        state_type, state_name = self._state(issue_id)
        return state_type == "completed" or state_name in COMPLETED_STATE_NAMES

    def has_open_linked_pull_request(self, issue_id: str) -> bool:
        return False
