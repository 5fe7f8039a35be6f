"""tools/snyk/auth.py

Bearer-token acquisition for the Snyk REST API.

The token is issued by ``snyk auth`` and stored by the Snyk CLI under the
``INTERNAL_OAUTH_TOKEN_STORAGE`` config key. We only consume it:

* read the stored record,
* refresh it through the OAuth2 token endpoint when it expires within
  :data:`REFRESH_HORIZON`,
* write the refreshed record back so the Snyk CLI sees it too.

Reading/writing the store and talking to the token endpoint are separate
capabilities (:class:`TokenProvider`, :class:`TokenRefresher`) so the API
client can be tested without either.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

import requests

from snyk_auto_org.errors import (
    TokenExpiredNoRefresh,
    TokenRefreshFailed,
    TokenUnavailable,
)
from tools.core_cmd import CmdResult, run_cmd

from .runner import locate_snyk_bin
from .types import SnykApiConfig, TokenResponse, TokenStorage

logger = logging.getLogger(__name__)

TOKEN_STORAGE_KEY = "INTERNAL_OAUTH_TOKEN_STORAGE"
OAUTH_TOKEN_ENV = "SNYK_OAUTH_TOKEN"

REFRESH_HORIZON = timedelta(minutes=5)


class TokenProvider(Protocol):
    def get_token(self) -> TokenStorage:
        ...

    def save_token(self, token: TokenStorage) -> None:
        ...


class TokenRefresher(Protocol):
    def refresh_token(self, refresh_token: str) -> TokenResponse:
        ...


class SnykCliTokenProvider:
    """Token store backed by ``snyk config get/set``."""

    def __init__(self, *, snyk_bin: Optional[str] = None, run: Callable[..., CmdResult] = run_cmd) -> None:
        self._snyk_bin = snyk_bin
        self._run = run

    def _bin(self) -> str:
        if self._snyk_bin is None:
            try:
                self._snyk_bin = locate_snyk_bin()
            except FileNotFoundError as e:
                raise TokenUnavailable(f"cannot read Snyk token: {e}") from e
        return self._snyk_bin

    def _snyk_config(self, *args: str) -> CmdResult:
        try:
            return self._run([self._bin(), "config", *args], timeout_seconds=30)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise TokenUnavailable(f"failed to execute snyk config command: {e}") from e

    def get_token(self) -> TokenStorage:
        res = self._snyk_config("get", TOKEN_STORAGE_KEY)
        if res.exit_code != 0:
            raise TokenUnavailable(
                f"failed to execute snyk config command (exit {res.exit_code}): {res.stderr.strip()}"
            )
        raw = res.stdout.strip()
        if not raw:
            raise TokenUnavailable("no access token found in Snyk config; run `snyk auth` first")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise TokenUnavailable(f"failed to parse token storage: {e}") from e
        if not isinstance(data, dict):
            raise TokenUnavailable("failed to parse token storage: not a JSON object")

        token = TokenStorage.from_dict(data)
        if not token.access_token:
            raise TokenUnavailable("no access token found in Snyk config; run `snyk auth` first")
        return token

    def save_token(self, token: TokenStorage) -> None:
        payload = json.dumps(token.to_dict(), separators=(",", ":"))
        res = self._snyk_config("set", f"{TOKEN_STORAGE_KEY}={payload}")
        if res.exit_code != 0:
            raise TokenRefreshFailed(
                f"failed to save refreshed token (exit {res.exit_code}): {res.stderr.strip()}"
            )


class EnvTokenProvider:
    """A pre-issued bearer token from ``$SNYK_OAUTH_TOKEN``; never refreshed."""

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token if token is not None else os.environ.get(OAUTH_TOKEN_ENV, "")

    def get_token(self) -> TokenStorage:
        if not self._token.strip():
            raise TokenUnavailable(f"{OAUTH_TOKEN_ENV} is empty")
        return TokenStorage(access_token=self._token.strip())

    def save_token(self, token: TokenStorage) -> None:
        pass


class OAuthTokenRefresher:
    """Exchanges a refresh token at the Snyk OAuth2 token endpoint."""

    def __init__(self, cfg: SnykApiConfig, *, session: Optional[requests.Session] = None) -> None:
        self._cfg = cfg
        self._session = session or requests.Session()

    def refresh_token(self, refresh_token: str) -> TokenResponse:
        data = {"grant_type": "refresh_token", "refresh_token": refresh_token}
        if self._cfg.oauth_client_id:
            data["client_id"] = self._cfg.oauth_client_id

        logger.debug("Snyk OAuth Request: POST %s", self._cfg.oauth_token_url)
        try:
            resp = self._session.post(
                self._cfg.oauth_token_url,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self._cfg.timeout_seconds,
            )
        except requests.RequestException as e:
            raise TokenRefreshFailed(f"failed to refresh token: {e}") from e

        if not (200 <= resp.status_code < 300):
            raise TokenRefreshFailed(
                f"failed to refresh token: HTTP {resp.status_code} {resp.text[:200]!r}"
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise TokenRefreshFailed(f"failed to refresh token: invalid JSON: {e}") from e

        token = TokenResponse.from_dict(payload if isinstance(payload, dict) else {})
        if not token.access_token:
            raise TokenRefreshFailed("failed to refresh token: response has no access_token")
        return token


def needs_refresh(token: TokenStorage, now: datetime) -> bool:
    if token.expiry is None:
        return False
    return token.expiry - now < REFRESH_HORIZON


def get_snyk_api_token(
    provider: TokenProvider,
    refresher: Optional[TokenRefresher],
    *,
    now: Optional[datetime] = None,
) -> str:
    """Return a usable access token, refreshing and persisting it if needed."""
    now = now or datetime.now(timezone.utc)
    token = provider.get_token()

    if not needs_refresh(token, now):
        return token.access_token

    expired = token.expiry is not None and token.expiry <= now

    if not token.refresh_token or refresher is None:
        if expired:
            raise TokenExpiredNoRefresh("access token has expired and no refresh token available")
        # Still valid for a few minutes; use it as-is.
        return token.access_token

    logger.debug("Access token expires at %s, refreshing", token.expiry)
    try:
        resp = refresher.refresh_token(token.refresh_token)
    except TokenRefreshFailed:
        raise
    except Exception as e:
        raise TokenRefreshFailed(f"failed to refresh token: {e}") from e

    refreshed = TokenStorage(
        access_token=resp.access_token,
        token_type=resp.token_type or token.token_type,
        refresh_token=resp.refresh_token or token.refresh_token,
        expiry=now + timedelta(seconds=resp.expires_in),
    )
    provider.save_token(refreshed)
    return refreshed.access_token
