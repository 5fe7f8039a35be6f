from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from cli.args.base import add_base_args
from cli.argv import partition_argv
from cli.commands.list_orgs import run_list_orgs
from cli.commands.run import ExecutorFactory, run_wrapped

from pipeline.models import ResolutionRequest
from pipeline.wiring import build_resolver, load_env_file, open_cache
from snyk_auto_org.config import load_config
from snyk_auto_org.logging_utils import setup_logging
from tools.snyk.api import SnykClient
from tools.snyk.runner import SnykExecutor

logger = logging.getLogger(__name__)

PROG = "snyk-auto-org"
HELP_FLAGS = {"-h", "--help"}

EPILOG = """\
All other arguments are passed to snyk unchanged, for example:

  snyk-auto-org test
  snyk-auto-org --org=my-org monitor --all-projects
  snyk-auto-org --git-url=https://github.com/acme/widgets code test
  snyk-auto-org --list-orgs
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        usage=f"{PROG} [options] <snyk command> [snyk arguments...]",
        description=(
            "Run the Snyk CLI with SNYK_CFG_ORG set to the organization that "
            "owns the current repository."
        ),
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        allow_abbrev=False,
    )
    add_base_args(parser)
    return parser


def _wants_help(passthrough: List[str]) -> bool:
    return not passthrough or all(a in HELP_FLAGS for a in passthrough)


def dispatch(
    argv: Sequence[str],
    *,
    config_path: Optional[Path] = None,
    client: Optional[SnykClient] = None,
    executor_factory: ExecutorFactory = SnykExecutor,
    cwd: Optional[Path] = None,
) -> int:
    """Run one invocation and return the process exit code.

    Raises AutoOrgError for fatal failures; the entrypoint reports them.
    """
    parser = build_parser()
    wrapper_args, passthrough = partition_argv(list(argv))
    args = parser.parse_args(wrapper_args)

    cfg = load_config(config_path)
    load_env_file(cfg.config_dir)
    cfg = cfg.with_overrides(verbose=args.verbose, cache_ttl=args.cache_ttl)
    setup_logging(verbose=cfg.verbose)

    cache = open_cache(cfg)
    resolver = build_resolver(cfg, cache, client=client, cwd=cwd)
    try:
        if args.reset_cache:
            cache.reset()
            logger.info("Cache reset")

        if args.list_orgs:
            return run_list_orgs(resolver)

        if _wants_help(passthrough):
            parser.print_help()
            return 0

        request = ResolutionRequest(
            org=args.org,
            git_url=args.git_url,
            auto_detect_git=bool(args.auto_detect_git),
        )
        return run_wrapped(resolver, request, passthrough, executor_factory=executor_factory)
    finally:
        cache.close()
        if client is None:
            resolver.client.close()
