#!/usr/bin/env python3
"""
Snyk CLI wrapper that picks the Snyk organization for you.

The organization is chosen from (in order): --org, the Snyk target that matches
the repository's git remote, the configured default organization. It is passed
to snyk through SNYK_CFG_ORG; everything else on the command line goes to snyk
unchanged.

Usage:
  python snyk_auto_org_cli.py test
  python snyk_auto_org_cli.py --org my-org monitor
  python snyk_auto_org_cli.py --git-url https://github.com/acme/widgets test
  python snyk_auto_org_cli.py --reset-cache --list-orgs
"""

from __future__ import annotations

import sys
from typing import Optional, Sequence

from cli.dispatch import dispatch
from snyk_auto_org.errors import AutoOrgError


def main(argv: Optional[Sequence[str]] = None) -> None:
    try:
        code = dispatch(sys.argv[1:] if argv is None else argv)
    except AutoOrgError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)
    raise SystemExit(code)


if __name__ == "__main__":
    main()
