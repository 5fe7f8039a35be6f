"""pipeline.wiring

This module is the **composition root** for the Python runtime.

"Composition root" means: the single place where we *assemble* the running
application from its building blocks:

- load environment variables (``.env`` in the config directory)
- choose the token source (``$SNYK_OAUTH_TOKEN`` vs the Snyk CLI token store)
- build the API client and the resolution engine

Entrypoints (the CLI, tests) ask this module for ready objects instead of
constructing clients and caches themselves.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import requests
from dotenv import load_dotenv

from snyk_auto_org.cache import OrgCache
from snyk_auto_org.config import AppConfig
from tools.snyk.api import SnykClient
from tools.snyk.auth import (
    OAUTH_TOKEN_ENV,
    EnvTokenProvider,
    OAuthTokenRefresher,
    SnykCliTokenProvider,
)
from tools.snyk.types import SnykApiConfig

from .resolution import OrganizationResolver

logger = logging.getLogger(__name__)

ENV_FILE_NAME = ".env"


def load_env_file(config_dir: Path) -> bool:
    """Load ``<config_dir>/.env`` without overriding exported variables."""
    env_path = config_dir / ENV_FILE_NAME
    if not env_path.exists():
        return False
    logger.debug("Loading environment from %s", env_path)
    return load_dotenv(dotenv_path=env_path, override=False)


def build_client(api_cfg: Optional[SnykApiConfig] = None) -> SnykClient:
    """Snyk REST client using ``$SNYK_OAUTH_TOKEN`` if set, else the Snyk CLI token."""
    api_cfg = api_cfg or SnykApiConfig.from_env()

    if os.environ.get(OAUTH_TOKEN_ENV, "").strip():
        logger.debug("Using bearer token from %s", OAUTH_TOKEN_ENV)
        return SnykClient(api_cfg, token_provider=EnvTokenProvider())

    # The refresher borrows the client's session; SnykClient.close() closes both.
    session = requests.Session()
    return SnykClient(
        api_cfg,
        token_provider=SnykCliTokenProvider(),
        token_refresher=OAuthTokenRefresher(api_cfg, session=session),
        session=session,
    )


def open_cache(cfg: AppConfig) -> OrgCache:
    return OrgCache(cfg.cache_path)


def build_resolver(
    cfg: AppConfig,
    cache: OrgCache,
    *,
    client: Optional[SnykClient] = None,
    cwd: Optional[Path] = None,
) -> OrganizationResolver:
    """Wire the resolution engine for one invocation."""
    return OrganizationResolver(
        cache,
        client or build_client(),
        cache_ttl=cfg.cache_ttl,
        default_org=cfg.default_org,
        cwd=cwd,
    )
