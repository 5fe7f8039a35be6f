"""cli.argv

Split a command line into wrapper flags and arguments for the wrapped tool.

Only the flags in :data:`VALUE_FLAGS` and :data:`BOOL_FLAGS` belong to the
wrapper. Every other token (including unknown flags and their values) is passed
to ``snyk`` unchanged and in its original order. A literal ``--`` stops flag
recognition; the ``--`` itself is passed through.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

# --flag=value or --flag value
VALUE_FLAGS = frozenset({"--cache-ttl", "--org", "--git-url"})

# --flag or --flag=<bool>
BOOL_FLAGS = frozenset({"--reset-cache", "--list-orgs", "--verbose", "--auto-detect-git"})


def partition_argv(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Return ``(wrapper_args, passthrough_args)``."""
    wrapper: List[str] = []
    passthrough: List[str] = []

    i = 0
    while i < len(argv):
        tok = argv[i]

        if tok == "--":
            passthrough.extend(argv[i:])
            break

        name = tok.split("=", 1)[0]
        if name in VALUE_FLAGS:
            wrapper.append(tok)
            if "=" not in tok and i + 1 < len(argv):
                wrapper.append(argv[i + 1])
                i += 1
        elif name in BOOL_FLAGS:
            wrapper.append(tok)
        else:
            passthrough.append(tok)
        i += 1

    return wrapper, passthrough
