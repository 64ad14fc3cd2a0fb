"""Configuration handling for git-worktree-keeper"""

import os
from dataclasses import dataclass, field, fields
from typing import Any, List, Optional

import git

from git_worktree_keeper.constants import CONFIG_SECTION
from git_worktree_keeper.exceptions import ConfigurationError
from git_worktree_keeper.logging_config import get_logger

logger = get_logger(__name__)

PROVIDER_KINDS = ["", "github", "gitlab", "jira", "linear"]
PR_PROVIDER_KINDS = ["", "github", "gitlab"]

# git config key (under the auto-worktree section) -> Config field
GIT_CONFIG_KEYS = {
    "issue-provider": "issue_provider",
    "pr-provider": "pr_provider",
    "stale-days": "stale_days",
    "aging-days": "aging_days",
    "worktree-base": "worktree_base",
    "jira-server": "jira_server",
    "jira-email": "jira_email",
    "gitlab-server": "gitlab_server",
    "gitlab-project": "gitlab_project",
    "run-hooks": "run_hooks",
    "fail-on-hook-error": "fail_on_hook_error",
    "custom-hooks": "custom_hooks",
}


@dataclass
class Config:
    """Configuration for git-worktree-keeper with validation."""

    # Trackers
    issue_provider: str = ""  # github, gitlab, jira, linear ("" = guess from remote)
    pr_provider: str = ""  # github, gitlab ("" = guess from remote)
    github_token: Optional[str] = None
    jira_server: str = ""
    jira_email: Optional[str] = None
    jira_api_token: Optional[str] = None
    gitlab_server: str = ""
    gitlab_project: str = ""

    # Age thresholds in days
    aging_days: float = 1
    stale_days: float = 4

    # Worktree placement (None = ~/worktrees/<repo folder>)
    worktree_base: Optional[str] = None

    # Hooks
    run_hooks: bool = True
    fail_on_hook_error: bool = False
    custom_hooks: List[str] = field(default_factory=list)

    # Lock contention handling
    lock_retry_attempts: int = 3
    lock_retry_delay: float = 1.0

    # Random branch names
    name_attempts: int = 50

    # Execution modes
    dry_run: bool = False
    force: bool = False
    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_providers()
        self._validate_thresholds()
        self._validate_retries()
        self._validate_custom_hooks()
        if self.github_token is None:
            self.github_token = os.environ.get("GITHUB_TOKEN")
        if self.jira_email is None:
            self.jira_email = os.environ.get("JIRA_EMAIL")
        if self.jira_api_token is None:
            self.jira_api_token = os.environ.get("JIRA_API_TOKEN")

    def _validate_providers(self):
        """Validate tracker kinds are known."""
        self.issue_provider = (self.issue_provider or "").strip().lower()
        self.pr_provider = (self.pr_provider or "").strip().lower()
        if self.issue_provider not in PROVIDER_KINDS:
            raise ConfigurationError(
                f"issue_provider must be one of {PROVIDER_KINDS[1:]}, got '{self.issue_provider}'"
            )
        if self.pr_provider not in PR_PROVIDER_KINDS:
            raise ConfigurationError(
                f"pr_provider must be one of {PR_PROVIDER_KINDS[1:]}, got '{self.pr_provider}'"
            )

    def _validate_thresholds(self):
        """Validate age thresholds are positive and ordered."""
        if self.aging_days <= 0:
            raise ConfigurationError(f"aging_days must be positive, got {self.aging_days}")
        if self.stale_days <= 0:
            raise ConfigurationError(f"stale_days must be positive, got {self.stale_days}")
        if self.aging_days >= self.stale_days:
            raise ConfigurationError(
                f"aging_days ({self.aging_days}) must be less than stale_days ({self.stale_days})"
            )

    def _validate_retries(self):
        """Validate retry and attempt counts."""
        if self.lock_retry_attempts <= 0:
            raise ConfigurationError(
                f"lock_retry_attempts must be positive, got {self.lock_retry_attempts}"
            )
        if self.lock_retry_delay < 0:
            raise ConfigurationError(
                f"lock_retry_delay cannot be negative, got {self.lock_retry_delay}"
            )
        if self.name_attempts <= 0:
            raise ConfigurationError(f"name_attempts must be positive, got {self.name_attempts}")

    def _validate_custom_hooks(self):
        """Accept a comma separated string as well as a list."""
        if isinstance(self.custom_hooks, str):
            self.custom_hooks = [h.strip() for h in self.custom_hooks.split(",") if h.strip()]
        elif not isinstance(self.custom_hooks, list):
            raise ConfigurationError("custom_hooks must be a list")

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)

    @classmethod
    def from_git_config(cls, repo_path: str, **overrides: Any) -> "Config":
        """Build a Config from the repository's ``auto-worktree.*`` git config keys.

        Explicit ``overrides`` (typically from the command line) win over stored
        values. Values that are ``None`` in ``overrides`` are ignored.
        """
        values = read_git_config_values(repo_path)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(values)


def _coerce(field_name: str, value: Any) -> Any:
    """Convert a raw git config value to the type of the Config field."""
    if field_name in ("run_hooks", "fail_on_hook_error"):
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("true", "yes", "on", "1")
    if field_name in ("stale_days", "aging_days"):
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"{field_name} must be a number, got '{value}'")
    return str(value)


def read_git_config_values(repo_path: str) -> dict:
    """Read the repository-scoped settings into a dict of Config field values.

    Missing keys are simply absent from the result.
    """
    try:
        repo = git.Repo(repo_path, search_parent_directories=True)
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
        logger.debug(f"No repository config available at {repo_path}: {e}")
        return {}

    values = {}
    try:
        reader = repo.config_reader()
        for key, field_name in GIT_CONFIG_KEYS.items():
            raw = reader.get_value(CONFIG_SECTION, key, default="")
            if raw == "":
                continue
            values[field_name] = _coerce(field_name, raw)
    finally:
        repo.close()

    logger.debug(f"Loaded git config values: {sorted(values)}")
    return values
