"""Helpers for trackers driven through their command line clients."""

import json
import re
import shutil
import subprocess
from typing import Any, Optional, Sequence

from git_worktree_keeper.exceptions import ProviderUnavailableError
from git_worktree_keeper.logging_config import get_logger

logger = get_logger(__name__)

CLI_QUERY_TIMEOUT = 30  # seconds


def run_json_command(
    provider: str,
    executable: str,
    args: Sequence[str],
    cwd: Optional[str] = None,
    env: Optional[dict] = None,
    timeout: float = CLI_QUERY_TIMEOUT,
    not_found: Optional["re.Pattern"] = None,
) -> Any:
    """Run a tracker CLI and decode its JSON output.

    A failed run whose stderr matches ``not_found`` is an answer, not an
    outage, and gives None like an empty output.

    Raises:
        ProviderUnavailableError: the CLI is missing, timed out, failed or printed invalid JSON
    """
    operation = " ".join([executable, *args[:2]])
    resolved = shutil.which(executable)
    if resolved is None:
        raise ProviderUnavailableError(provider, operation, f"'{executable}' not found on PATH")

    logger.debug(f"[{provider}] Running {executable} {' '.join(args)}")
    try:
        result = subprocess.run(
            [resolved, *args],
            cwd=cwd,
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        raise ProviderUnavailableError(provider, operation, f"timed out after {timeout}s")
    except OSError as e:
        raise ProviderUnavailableError(provider, operation, str(e))

    if result.returncode != 0:
        stderr = result.stderr.strip()
        if not_found is not None and not_found.search(stderr):
            logger.debug(f"[{provider}] {operation}: nothing found ({stderr})")
            return None
        raise ProviderUnavailableError(provider, operation, stderr or f"exit code {result.returncode}")

    output = result.stdout.strip()
    if not output:
        return None
    try:
        return json.loads(output)
    except json.JSONDecodeError as e:
        raise ProviderUnavailableError(provider, operation, f"invalid JSON output: {e}")
