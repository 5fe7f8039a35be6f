"""tools/snyk

Snyk adapters: REST API client, OAuth token store/refresh, and the CLI launcher.
"""

from __future__ import annotations

from .api import SnykClient
from .auth import (
    EnvTokenProvider,
    OAuthTokenRefresher,
    SnykCliTokenProvider,
    TokenProvider,
    TokenRefresher,
    get_snyk_api_token,
)
from .runner import SNYK_ORG_ENV, SnykExecutor
from .types import SnykApiConfig, TokenResponse, TokenStorage

__all__ = [
    "EnvTokenProvider",
    "OAuthTokenRefresher",
    "SNYK_ORG_ENV",
    "SnykApiConfig",
    "SnykCliTokenProvider",
    "SnykClient",
    "SnykExecutor",
    "TokenProvider",
    "TokenRefresher",
    "TokenResponse",
    "TokenStorage",
    "get_snyk_api_token",
]
