"""Branch name sanitizing and random name generation."""

import random
import re
from typing import Callable, Optional

from git_worktree_keeper.constants import BRANCH_PREFIX
from git_worktree_keeper.exceptions import NameGenerationExhaustedError
from git_worktree_keeper.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 50
ISSUE_TITLE_MAX_LENGTH = 40

COLORS = (
    "coral", "mint", "amber", "azure", "crimson", "emerald", "golden",
    "indigo", "jade", "lavender", "ruby", "sapphire", "silver", "violet",
    "bronze", "copper", "pearl", "rose", "slate", "teal",
)

ADJECTIVES = (
    "swift", "bold", "bright", "calm", "clever", "eager", "fierce", "gentle",
    "happy", "keen", "lively", "merry", "noble", "quick", "sharp", "steady",
    "strong", "wild", "wise", "brave", "cool", "fair", "kind", "neat",
    "pure", "rare", "safe", "true", "vast", "warm",
)

NOUNS = (
    "zebra", "panda", "tiger", "eagle", "dolphin", "falcon", "gecko", "hawk",
    "iguana", "jaguar", "koala", "lemur", "meerkat", "narwhal", "octopus",
    "penguin", "quail", "raven", "seal", "turtle", "urchin", "viper",
    "walrus", "yak", "badger", "cheetah", "drake", "ferret", "lynx",
    "otter", "python", "shark", "wolf", "fox", "bear", "deer", "crane",
)

_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")


def sanitize(raw: str) -> str:
    """Turn arbitrary text into a lowercase dash separated name.

    Every run of characters outside ``[a-z0-9]`` becomes one dash, and leading
    or trailing dashes are dropped, so ``"Fix: Login Bug!!"`` becomes
    ``"fix-login-bug"``. The result is either empty or matches
    ``^[a-z0-9]+(-[a-z0-9]+)*$``.
    """
    return _NON_ALNUM_RUN.sub("-", raw.lower()).strip("-")


class BranchNamer:
    """Generates branch names for new worktrees."""

    def __init__(self, rng: Optional[random.Random] = None, prefix: str = BRANCH_PREFIX):
        self.rng = rng or random.Random()
        self.prefix = prefix

    def generate_random_name(self) -> str:
        """Return a name like ``work/coral-swift-zebra``."""
        color = self.rng.choice(COLORS)
        adjective = self.rng.choice(ADJECTIVES)
        noun = self.rng.choice(NOUNS)
        return f"{self.prefix}{color}-{adjective}-{noun}"

    def generate_unique_name(
        self, exists: Callable[[str], bool], max_attempts: int = DEFAULT_MAX_ATTEMPTS
    ) -> str:
        """Draw random names until ``exists`` reports one as free.

        Raises:
            NameGenerationExhaustedError: every one of ``max_attempts`` draws collided
        """
        for attempt in range(1, max_attempts + 1):
            name = self.generate_random_name()
            if not exists(name):
                logger.debug(f"Generated branch name {name} after {attempt} attempt(s)")
                return name
        raise NameGenerationExhaustedError(max_attempts)

    def branch_name_for_issue(self, issue_id: str, title: str) -> str:
        """Return ``work/<id>-<title>`` with the title sanitized and truncated."""
        slug = sanitize(title.lower()[:ISSUE_TITLE_MAX_LENGTH])
        if slug:
            return f"{self.prefix}{issue_id}-{slug}"
        return f"{self.prefix}{issue_id}"
