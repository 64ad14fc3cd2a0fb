"""Tests for branch name sanitizing and generation"""
import random
import re
from unittest.mock import Mock

import pytest

from git_worktree_keeper.exceptions import NameGenerationExhaustedError
from git_worktree_keeper.services.git.names import (
    ADJECTIVES,
    COLORS,
    NOUNS,
    BranchNamer,
    sanitize,
)

SANITIZED = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")

SAMPLE_INPUTS = [
    "Fix: Login Bug!!",
    "",
    "---",
    "already-clean",
    "  spaces   everywhere  ",
    "UPPER_case_Name",
    "feature/PROJ-123 do thing",
    "émoji 🚀 and ünïcode",
    "trailing-dash-",
    "-leading-dash",
    "a--b__c..d",
    "12345",
    "!!!",
    "tab\tand\nnewline",
]


class TestSanitize:
    """Test sanitize()."""

    def test_login_bug_scenario(self):
        assert sanitize("Fix: Login Bug!!") == "fix-login-bug"

    @pytest.mark.parametrize("raw", SAMPLE_INPUTS)
    def test_output_shape(self, raw):
        """Test the result is empty or dash separated lowercase alphanumerics."""
        result = sanitize(raw)
        assert result == "" or SANITIZED.match(result)

    @pytest.mark.parametrize("raw", SAMPLE_INPUTS)
    def test_idempotent(self, raw):
        assert sanitize(sanitize(raw)) == sanitize(raw)

    def test_symbols_only(self):
        assert sanitize("!!!") == ""

    def test_collapses_runs(self):
        assert sanitize("a--b__c..d") == "a-b-c-d"


class TestGenerateRandomName:
    """Test random name composition."""

    def test_format(self):
        name = BranchNamer(rng=random.Random(7)).generate_random_name()

        assert name.startswith("work/")
        color, adjective, noun = name[len("work/"):].split("-")
        assert color in COLORS
        assert adjective in ADJECTIVES
        assert noun in NOUNS

    def test_deterministic_with_seed(self):
        first = BranchNamer(rng=random.Random(42)).generate_random_name()
        second = BranchNamer(rng=random.Random(42)).generate_random_name()
        assert first == second

    def test_custom_prefix(self):
        name = BranchNamer(rng=random.Random(1), prefix="agent/").generate_random_name()
        assert name.startswith("agent/")

    def test_names_are_sanitized_form(self):
        namer = BranchNamer(rng=random.Random(3))
        for _ in range(20):
            name = namer.generate_random_name()
            assert SANITIZED.match(name[len("work/"):])


class TestGenerateUniqueName:
    """Test collision-free generation."""

    def test_returns_first_free_name(self):
        exists = Mock(side_effect=[True, True, False])
        name = BranchNamer(rng=random.Random(5)).generate_unique_name(exists)

        assert exists.call_count == 3
        assert name == exists.call_args[0][0]

    def test_exhaustion_after_exact_attempts(self):
        """Test an always-colliding predicate is consulted exactly max_attempts times."""
        exists = Mock(return_value=True)

        with pytest.raises(NameGenerationExhaustedError) as exc_info:
            BranchNamer().generate_unique_name(exists, max_attempts=50)

        assert exists.call_count == 50
        assert exc_info.value.attempts == 50
        assert "Could not generate unique name after 50 attempts" in str(exc_info.value)

    def test_small_attempt_limit(self):
        exists = Mock(return_value=True)
        with pytest.raises(NameGenerationExhaustedError):
            BranchNamer().generate_unique_name(exists, max_attempts=3)
        assert exists.call_count == 3


class TestBranchNameForIssue:
    """Test issue-derived branch names."""

    def test_numeric_issue(self):
        assert BranchNamer().branch_name_for_issue("42", "Fix: Login Bug!!") == "work/42-fix-login-bug"

    def test_ticket_key(self):
        assert BranchNamer().branch_name_for_issue("PROJ-7", "Add export") == "work/PROJ-7-add-export"

    def test_title_truncated(self):
        title = "a very long issue title that keeps going well past forty characters"
        branch = BranchNamer().branch_name_for_issue("1", title)
        assert branch == "work/1-" + sanitize(title[:40])

    def test_empty_title(self):
        assert BranchNamer().branch_name_for_issue("9", "???") == "work/9"
