from __future__ import annotations

import logging
from typing import Callable, List, Optional

from pipeline.models import ResolutionRequest
from pipeline.resolution import OrganizationResolver
from tools.snyk.runner import SNYK_ORG_ENV, SnykExecutor

logger = logging.getLogger(__name__)

ExecutorFactory = Callable[[Optional[str]], SnykExecutor]


def run_wrapped(
    resolver: OrganizationResolver,
    request: ResolutionRequest,
    passthrough: List[str],
    *,
    executor_factory: ExecutorFactory = SnykExecutor,
) -> int:
    """Resolve the organization, then run ``snyk`` with it; returns snyk's exit code."""
    resolution = resolver.resolve(request)
    if resolution.resolved:
        logger.info("Resolved %s", resolution.describe())
    else:
        logger.info("No organization resolved; running snyk without %s", SNYK_ORG_ENV)

    executor = executor_factory(resolution.org_id)
    return int(executor.execute(passthrough))
