"""tools/snyk/runner.py

Launch the wrapped Snyk CLI with the resolved organization in its environment.
"""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Callable, Dict, List, Mapping, Optional

from snyk_auto_org.errors import LaunchError
from tools.core_cmd import run_passthrough, which_or_raise

logger = logging.getLogger(__name__)

SNYK_BIN_FALLBACKS = ["/opt/homebrew/bin/snyk", "/usr/local/bin/snyk"]
SNYK_BIN_ENV = "SNYK_AUTO_ORG_SNYK_BIN"
SNYK_ORG_ENV = "SNYK_CFG_ORG"


def locate_snyk_bin() -> str:
    """Absolute path of the ``snyk`` executable; raises FileNotFoundError."""
    return which_or_raise("snyk", fallbacks=SNYK_BIN_FALLBACKS, override_env=SNYK_BIN_ENV)


def build_child_env(org_id: Optional[str], base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Copy of *base* (default ``os.environ``) with SNYK_CFG_ORG set when *org_id* is."""
    env = dict(os.environ if base is None else base)
    if org_id:
        env[SNYK_ORG_ENV] = org_id
    return env


class SnykExecutor:
    def __init__(
        self,
        org_id: Optional[str],
        *,
        snyk_bin: Optional[str] = None,
        run: Callable[..., int] = run_passthrough,
    ) -> None:
        self.org_id = org_id
        self._snyk_bin = snyk_bin
        self._run = run

    def execute(self, args: List[str]) -> int:
        """Run ``snyk <args...>`` attached to our stdio and return its exit code."""
        snyk_bin = self._snyk_bin
        if snyk_bin is None:
            try:
                snyk_bin = locate_snyk_bin()
            except FileNotFoundError as e:
                raise LaunchError(str(e)) from e

        cmd = [snyk_bin, *args]
        if self.org_id:
            logger.debug("Running %s with %s=%s", " ".join(cmd), SNYK_ORG_ENV, self.org_id)
        else:
            logger.debug("Running %s without organization", " ".join(cmd))

        try:
            return self._run(cmd, env=build_child_env(self.org_id))
        except (OSError, subprocess.SubprocessError) as e:
            raise LaunchError(f"failed to run {snyk_bin}: {e}") from e
