"""Issue and pull request tracker interfaces"""

from abc import ABC, abstractmethod


class TicketTracker(ABC):
    """Answers questions about the state of an issue.

    Implementations raise ProviderUnavailableError when the tracker cannot be
    reached or refuses the request; callers decide how to degrade.
    """

    name = "tracker"

    def clear_cache(self) -> None:
        """Forget answers remembered during the previous classification pass."""

    @abstractmethod
    def is_issue_closed(self, issue_id: str) -> bool:
        """True when the issue is closed for any reason."""

    @abstractmethod
    def is_issue_merged_or_completed(self, issue_id: str) -> bool:
        """True when the issue was closed because its work was integrated."""

    @abstractmethod
    def has_open_linked_pull_request(self, issue_id: str) -> bool:
        """True when an open pull/merge request still references the issue."""


class PullRequestTracker(ABC):
    """Answers whether a pull/merge request was merged."""

    name = "tracker"

    @abstractmethod
    def is_pull_request_merged(self, branch_or_id: str) -> bool:
        """True when a merged pull request exists for a branch name or request number."""
