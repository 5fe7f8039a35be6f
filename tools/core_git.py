"""tools/core_git.py

Git metadata helpers.

Only one question is asked of git here: "which remote does this checkout
track?" The answer is normalized so it can be compared with the target URLs
the Snyk API reports.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Callable, List, Optional

from snyk_auto_org.errors import NoRemoteConfigured, VCSUnavailable
from snyk_auto_org.urls import normalize_repo_url

from .core_cmd import CmdResult, run_cmd

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"

RunFn = Callable[..., CmdResult]


def _git(args: List[str], *, cwd: Optional[Path], run: RunFn) -> CmdResult:
    cmd = ["git"]
    if cwd is not None:
        cmd += ["-C", str(cwd)]
    cmd += args
    try:
        return run(cmd, timeout_seconds=20)
    except (FileNotFoundError, PermissionError) as e:
        raise VCSUnavailable(f"git is not available: {e}") from e
    except (OSError, subprocess.TimeoutExpired) as e:
        raise VCSUnavailable(f"failed to run git: {e}") from e


def get_raw_remote_url(
    cwd: Optional[Path] = None,
    *,
    remote: str = DEFAULT_REMOTE,
    run: RunFn = run_cmd,
) -> str:
    """Return the un-normalized URL of *remote*, or of the first remote.

    Raises NoRemoteConfigured / VCSUnavailable.
    """
    res = _git(["remote", "get-url", remote], cwd=cwd, run=run)
    url = (res.stdout or "").strip()
    if res.exit_code == 0 and url:
        return url

    # No such remote; fall back to whatever remote the checkout does have.
    listing = _git(["remote"], cwd=cwd, run=run)
    names = [n.strip() for n in (listing.stdout or "").splitlines() if n.strip()]
    if listing.exit_code != 0 or not names:
        detail = (res.stderr or listing.stderr or "").strip()
        raise NoRemoteConfigured(
            "no git remote configured" + (f": {detail}" if detail else "")
        )

    fallback = names[0]
    logger.debug("Remote %r not found, using %r", remote, fallback)
    res = _git(["remote", "get-url", fallback], cwd=cwd, run=run)
    url = (res.stdout or "").strip()
    if res.exit_code != 0 or not url:
        raise NoRemoteConfigured(f"no remote URL found for {fallback}")
    return url


def get_git_remote_url(
    cwd: Optional[Path] = None,
    *,
    remote: str = DEFAULT_REMOTE,
    run: RunFn = run_cmd,
) -> str:
    """Return the normalized remote URL of the repository at *cwd*.

    Raises NoRemoteConfigured, VCSUnavailable, or InvalidURL.
    """
    return normalize_repo_url(get_raw_remote_url(cwd, remote=remote, run=run))
