from __future__ import annotations

import argparse

_TRUE = {"1", "true", "t", "yes", "y", "on"}
_FALSE = {"0", "false", "f", "no", "n", "off"}


def parse_bool(raw: str) -> bool:
    v = str(raw).strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value: {raw!r}")


def _add_bool_flag(parser: argparse.ArgumentParser, flag: str, *, default: bool, help: str) -> None:
    parser.add_argument(
        flag,
        nargs="?",
        const=True,
        default=default,
        type=parse_bool,
        metavar="BOOL",
        help=help,
    )


def add_base_args(parser: argparse.ArgumentParser) -> None:
    """Register the flags the wrapper itself understands.

    This includes:
    - cache control (reset, TTL override)
    - organization selection (explicit org, git URL, auto-detection)
    - listing organizations
    - diagnostics
    """

    # Cache
    _add_bool_flag(
        parser,
        "--reset-cache",
        default=False,
        help="Clear the local organization/target cache before resolving.",
    )
    parser.add_argument(
        "--cache-ttl",
        default=None,
        help="Override the configured cache TTL for this run (e.g. 24h, 1h30m).",
    )

    # Organization selection
    parser.add_argument(
        "--org",
        default=None,
        help="Organization id, name or slug to use (skips git URL detection).",
    )
    parser.add_argument(
        "--git-url",
        default=None,
        help="Repository URL to match against Snyk targets (overrides detection).",
    )
    _add_bool_flag(
        parser,
        "--auto-detect-git",
        default=True,
        help="Detect the repository URL from the git remote (default: true).",
    )

    _add_bool_flag(
        parser,
        "--list-orgs",
        default=False,
        help="List available Snyk organizations and exit.",
    )
    _add_bool_flag(
        parser,
        "--verbose",
        default=False,
        help="Print diagnostics for each resolution step.",
    )
