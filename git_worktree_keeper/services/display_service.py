"""Display service for worktree listings and cleanup plans"""

from typing import List, Optional

from rich.console import Console
from rich.table import Table

from git_worktree_keeper.constants import CLI_COLORS, COLUMNS
from git_worktree_keeper.formatters import (
    format_age,
    format_status,
    format_unpushed,
    format_worktree_name,
)
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.classification import (
    Classification,
    ClassificationResult,
    CleanupCandidate,
    RemovalResult,
)
from git_worktree_keeper.models.worktree import LockFile
from git_worktree_keeper.services.cleanup_service import is_within

logger = get_logger(__name__)


class DisplayService:
    def __init__(self, console: Optional[Console] = None, now: Optional[float] = None):
        self.console = console or Console()
        self.now = now

    def display_worktree_table(
        self,
        results: List[ClassificationResult],
        current_path: Optional[str] = None,
        show_summary: bool = False,
    ) -> None:
        """Display a table of worktrees with their classification."""
        if not results:
            self.console.print("No worktrees found.")
            return

        table = Table()
        for col in COLUMNS:
            table.add_column(col.label, max_width=col.width or None)

        for result in results:
            worktree = result.worktree
            is_current = bool(current_path) and is_within(current_path, worktree.path)
            status = format_status(result.classification)
            if result.provider_error:
                status += " (?)"

            # Match COLUMNS order: Worktree, Branch, Age, Unpushed, Issue, Status
            table.add_row(
                format_worktree_name(worktree.path, is_current),
                worktree.display_ref,
                format_age(worktree.age_seconds(self.now)),
                format_unpushed(worktree.unpushed_count),
                str(worktree.linked_issue) if worktree.linked_issue else "",
                status,
                style=CLI_COLORS.get(result.classification.value),
            )

        self.console.print(table)

        if show_summary:
            self.console.print("\nSummary:")
            self.console.print(f"Total worktrees: {len(results)}")
            for classification in Classification:
                count = sum(1 for r in results if r.classification == classification)
                if count:
                    self.console.print(f"{format_status(classification).capitalize()}: {count}")
            unavailable = sum(1 for r in results if r.provider_error)
            if unavailable:
                self.console.print(
                    f"[yellow]{unavailable} worktree(s) could not be checked against the tracker[/yellow]"
                )

    def display_cleanup_plan(self, candidates: List[CleanupCandidate]) -> None:
        """Display the worktrees proposed for removal."""
        if not candidates:
            self.console.print("Nothing to clean up.")
            return

        self.console.print(f"\nWorktrees that would be removed ({len(candidates)}):")
        for index, candidate in enumerate(candidates, 1):
            color = CLI_COLORS.get(candidate.classification.value, "white")
            self.console.print(
                f"  {index}. [{color}]{candidate.worktree.display_ref}[/{color}] "
                f"({candidate.reason}) {candidate.worktree.path}"
            )
            if candidate.warning:
                self.console.print(f"     [bold red]WARNING:[/bold red] {candidate.warning}")

    def display_removal_results(self, results: List[RemovalResult]) -> None:
        for result in results:
            path = result.candidate.worktree.path
            if result.removed:
                branch_note = " and its branch" if result.branch_deleted else ""
                self.console.print(f"[green]✓[/green] Removed {path}{branch_note}")
                if result.error:
                    self.console.print(f"  [yellow]{result.error}[/yellow]")
            elif result.error:
                self.console.print(f"[red]✗[/red] Failed to remove {path}: {result.error}")
            else:
                self.console.print(f"[dim]Would remove {path}[/dim]")

    def display_lock_files(self, lock_files: List[LockFile]) -> None:
        if not lock_files:
            self.console.print("[green]No lock files found.[/green]")
            return

        table = Table(title="Lock files")
        table.add_column("Path")
        table.add_column("Age")
        table.add_column("PID")
        table.add_column("Owner")
        for lock_file in lock_files:
            owner = "[green]alive[/green]" if lock_file.owner_alive else "[red]stale[/red]"
            table.add_row(
                lock_file.path,
                format_age(lock_file.age),
                str(lock_file.owner_process_id) if lock_file.owner_process_id > 0 else "-",
                owner,
            )
        self.console.print(table)
