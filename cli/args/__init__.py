"""CLI argument builder modules.

The top-level :mod:`snyk_auto_org_cli` is intentionally kept thin. Flags are
registered by small "arg builder" functions housed here:

- :func:`cli.args.base.add_base_args`

Only the wrapper's own flags are registered; everything else on the command
line belongs to ``snyk`` and is split off by :func:`cli.argv.partition_argv`
before argparse sees it.
"""

from __future__ import annotations

__all__ = [
    "base",
]
