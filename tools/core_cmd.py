"""tools/core_cmd.py

Command-execution helpers shared by the git and Snyk CLI adapters.

This module deliberately avoids tool-specific knowledge. It provides:

* :func:`which_or_raise` - resolve executables reliably across environments.
* :func:`run_cmd` - run a subprocess (no ``shell=True``) and capture output.
* :func:`run_passthrough` - run a subprocess attached to our own stdio.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional


@dataclass(frozen=True)
class CmdResult:
    exit_code: int
    stdout: str
    stderr: str


def which_or_raise(
    bin_name: str,
    fallbacks: Optional[List[str]] = None,
    *,
    override_env: Optional[str] = None,
) -> str:
    """Locate an executable and return its absolute path.

    Lookup order: ``$override_env`` (when given and set), PATH, then fallbacks.
    Raises FileNotFoundError when nothing is found.
    """
    if override_env:
        explicit = os.environ.get(override_env, "").strip()
        if explicit:
            p = Path(explicit).expanduser()
            if p.exists() and os.access(str(p), os.X_OK):
                return str(p)
            found = shutil.which(explicit)
            if found:
                return found
            raise FileNotFoundError(f"{override_env}={explicit} is not an executable file.")

    found = shutil.which(bin_name)
    if found:
        return found

    for candidate in fallbacks or []:
        p = Path(candidate)
        if p.exists() and os.access(str(p), os.X_OK):
            return str(p)

    raise FileNotFoundError(
        f"Executable '{bin_name}' not found on PATH. "
        f"Tried fallbacks: {fallbacks or []}"
    )


def run_cmd(cmd: List[str], *, timeout_seconds: int = 0) -> CmdResult:
    """Run a subprocess and capture stdout/stderr (no ``shell=True``).

    Never raises on non-zero exit codes; only raises on execution errors
    (e.g. binary not found, timeout).
    """
    proc = subprocess.run(
        cmd,
        text=True,
        capture_output=True,
        timeout=timeout_seconds if timeout_seconds and timeout_seconds > 0 else None,
    )
    return CmdResult(
        exit_code=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
    )


def run_passthrough(cmd: List[str], *, env: Mapping[str, str]) -> int:
    """Run a subprocess with inherited stdin/stdout/stderr; return its exit code.

    *env* is the complete child environment (not merged).
    """
    proc = subprocess.run(cmd, env=dict(env))
    return proc.returncode
