"""Command-line interface for git-worktree-keeper"""

import os
import sys
from typing import List, Optional, Sequence

from rich.console import Console

from git_worktree_keeper.cli.args import parse_args
from git_worktree_keeper.config import Config
from git_worktree_keeper.core import WorktreeKeeper
from git_worktree_keeper.exceptions import WorktreeKeeperError
from git_worktree_keeper.logging_config import setup_logging
from git_worktree_keeper.models.classification import CleanupCandidate
from git_worktree_keeper.services.display_service import DisplayService

console = Console()


def _confirm(prompt: str) -> bool:
    response = console.input(f"{prompt} [y/N] ")
    return response.strip().lower() in ("y", "yes")


def cmd_list(keeper: WorktreeKeeper, args, display: DisplayService) -> int:
    results = keeper.classify_worktrees()
    display.display_worktree_table(results, current_path=os.getcwd(), show_summary=args.summary)
    return 0


def cmd_new(keeper: WorktreeKeeper, args, display: DisplayService) -> int:
    if args.no_hooks:
        keeper.hook_runner.enabled = False

    if args.issue:
        worktree = keeper.create_worktree_for_issue(args.issue, args.title, base_branch=args.base)
    else:
        worktree = keeper.create_worktree(args.branch, base_branch=args.base, path=args.path)

    if keeper.config.dry_run:
        console.print(f"[yellow]Would create[/yellow] {worktree.branch_name} at {worktree.path}")
    else:
        console.print(f"[green]✓[/green] Created {worktree.branch_name} at {worktree.path}")
    return 0


def _confirmed_ids(candidates: List[CleanupCandidate], force: bool) -> List[str]:
    """Ask which candidates to remove; worktrees carrying a warning are asked about one by one."""
    if force:
        return [c.candidate_id for c in candidates]

    if not _confirm("\nProceed with cleanup?"):
        return []

    confirmed = []
    for candidate in candidates:
        if candidate.warning:
            console.print(f"\n[bold red]WARNING:[/bold red] {candidate.worktree.path}: {candidate.warning}")
            if not _confirm(f"   Still remove {candidate.worktree.display_ref}?"):
                continue
        confirmed.append(candidate.candidate_id)
    return confirmed


def cmd_cleanup(keeper: WorktreeKeeper, args, display: DisplayService) -> int:
    candidates = keeper.plan_cleanup(current_path=os.getcwd())
    display.display_cleanup_plan(candidates)
    if not candidates:
        return 0

    confirmed = _confirmed_ids(candidates, force=keeper.config.force or keeper.config.dry_run)
    if not confirmed:
        console.print("[yellow]Nothing removed[/yellow]")
        return 0

    results = keeper.cleanup(candidates, confirmed)
    display.display_removal_results(results)
    return 1 if any(r.error and not r.removed for r in results) else 0


def cmd_prune(keeper: WorktreeKeeper, args, display: DisplayService) -> int:
    pruned = keeper.prune()
    verb = "Would prune" if keeper.config.dry_run else "Pruned"
    console.print(f"{verb} {pruned} orphaned worktree(s)")
    return 0


def cmd_doctor(keeper: WorktreeKeeper, args, display: DisplayService) -> int:
    lock_files = keeper.scan_locks()
    display.display_lock_files(lock_files)

    if args.remove_stale_locks:
        removed = keeper.remove_stale_locks()
        for lock_file in removed:
            console.print(f"[green]✓[/green] Removed {lock_file.path}")
        if not removed:
            console.print("No stale lock files removed")
    return 0


COMMANDS = {
    "list": cmd_list,
    "new": cmd_new,
    "cleanup": cmd_cleanup,
    "prune": cmd_prune,
    "doctor": cmd_doctor,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the application."""
    parsed_args = parse_args(argv)
    try:
        setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

        repo_path = os.path.abspath(parsed_args.repo_path or os.getcwd())
        config = Config.from_git_config(
            repo_path,
            dry_run=parsed_args.dry_run,
            force=getattr(parsed_args, "force", False),
            verbose=parsed_args.verbose,
            debug=parsed_args.debug,
            stale_days=getattr(parsed_args, "stale_days", None),
            aging_days=getattr(parsed_args, "aging_days", None),
        )

        if parsed_args.debug:
            console.print("[yellow]Debug mode enabled[/yellow]")
            console.print("[yellow]Configuration:[/yellow]")
            for key, value in config.to_dict().items():
                if key in ("github_token", "jira_api_token") and value:
                    value = "***"
                console.print(f"  {key}: {value}")

        keeper = WorktreeKeeper(repo_path, config)
        return COMMANDS[parsed_args.command](keeper, parsed_args, DisplayService(console))
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except WorktreeKeeperError as e:
        console.print(f"[red]Error: {e}[/red]")
        if parsed_args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
