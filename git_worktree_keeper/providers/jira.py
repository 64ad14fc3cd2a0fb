"""Jira integration"""

from typing import TYPE_CHECKING, Optional, Union

from jira import JIRA, JIRAError

from git_worktree_keeper.exceptions import ProviderUnavailableError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.providers.base import TicketTracker

if TYPE_CHECKING:
    from git_worktree_keeper.config import Config

logger = get_logger(__name__)

CLOSED_STATUSES = {"done", "closed", "resolved", "complete", "completed", "won't do", "cancelled"}
COMPLETED_STATUSES = {"done", "resolved", "complete", "completed"}


class JiraProvider(TicketTracker):
    """Ticket state from a Jira server.

    Jira knows nothing about pull requests here, so an open linked pull
    request is never reported.
    """

    name = "jira"

    def __init__(self, config: Union["Config", dict], client: Optional[JIRA] = None):
        self.server = config.get("jira_server") or ""
        self.email = config.get("jira_email")
        self.api_token = config.get("jira_api_token")
        self.jira = client

    def _client(self) -> JIRA:
        if self.jira is not None:
            return self.jira
        if not self.server:
            raise ProviderUnavailableError(self.name, "connect", "jira_server is not configured")

        basic_auth = (self.email, self.api_token) if self.email and self.api_token else None
        try:
            self.jira = JIRA(server=self.server, basic_auth=basic_auth)
        except (JIRAError, OSError) as e:
            raise ProviderUnavailableError(self.name, "connect", str(e))
        return self.jira

    def _status(self, issue_id: str):
        """Return ``(status name, status category key)`` for a ticket, both lowercase."""
        try:
            issue = self._client().issue(issue_id, fields="status")
        except (JIRAError, OSError) as e:
            raise ProviderUnavailableError(self.name, "issue", f"{issue_id}: {e}")

        status = issue.fields.status
        name = (getattr(status, "name", "") or "").lower()
        category = getattr(status, "statusCategory", None)
        category_key = (getattr(category, "key", "") or "").lower()
        logger.debug(f"[Jira] {issue_id} status: {name} ({category_key})")
        return name, category_key

    def is_issue_closed(self, issue_id: str) -> bool:
        name, category_key = self._status(issue_id)
        return category_key == "done" or name in CLOSED_STATUSES

    def is_issue_merged_or_completed(self, issue_id: str) -> bool:
        name, _ = self._status(issue_id)
        return name in COMPLETED_STATUSES

    def has_open_linked_pull_request(self, issue_id: str) -> bool:
        return False
