"""Command-line argument parsing for git-worktree-keeper."""

import argparse
from typing import Optional, Sequence

from git_worktree_keeper.__version__ import __version__


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-worktree-keeper",
        description="Create, classify and clean up git worktrees",
        epilog="Settings are read from the 'auto-worktree' section of git config, "
        "e.g. git config auto-worktree.issue-provider github",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument("--version", action="version", version=f"git-worktree-keeper {__version__}")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview mode - show what would change without changing anything",
    )
    parser.add_argument("-C", dest="repo_path", default=None, metavar="PATH",
                        help="Run as if started in PATH")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    list_parser = subparsers.add_parser("list", help="List worktrees with their status")
    _add_threshold_args(list_parser)
    list_parser.add_argument("--summary", action="store_true", help="Show totals per status")

    new_parser = subparsers.add_parser("new", help="Create a worktree")
    new_parser.add_argument(
        "branch", nargs="?", help="Branch to check out or create (random work/... name if omitted)"
    )
    new_parser.add_argument("--base", help="Branch to cut a new branch from (default branch if omitted)")
    new_parser.add_argument("--path", help="Worktree directory (derived from the branch if omitted)")
    new_parser.add_argument("--issue", metavar="ID", help="Name the branch after this issue")
    new_parser.add_argument("--title", default="", help="Issue title used with --issue")
    new_parser.add_argument("--no-hooks", action="store_true", help="Skip post-creation hooks")

    cleanup_parser = subparsers.add_parser("cleanup", help="Remove merged, closed and stale worktrees")
    _add_threshold_args(cleanup_parser)
    cleanup_parser.add_argument("--force", action="store_true", help="Skip confirmations")

    subparsers.add_parser("prune", help="Forget worktrees whose directory is gone")

    doctor_parser = subparsers.add_parser("doctor", help="Inspect repository lock files")
    doctor_parser.add_argument(
        "--remove-stale-locks",
        action="store_true",
        help="Delete lock files whose owning process is no longer running",
    )

    return parser


def _add_threshold_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--stale-days", type=float, default=None, help="Days until a worktree is stale")
    parser.add_argument("--aging-days", type=float, default=None, help="Days until a worktree is aging")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments. ``list`` is the default command."""
    args = build_parser().parse_args(argv)
    if args.command is None:
        args.command = "list"
        args.stale_days = None
        args.aging_days = None
        args.summary = False
    return args
