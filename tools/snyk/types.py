from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

DEFAULT_REST_BASE_URL = "https://api.snyk.io/rest"
DEFAULT_OAUTH_TOKEN_URL = "https://api.snyk.io/oauth2/token"
DEFAULT_REST_VERSION = "2024-10-15"
DEFAULT_PAGE_LIMIT = 100
DEFAULT_TIMEOUT_SECONDS = 10


@dataclass(frozen=True)
class SnykApiConfig:
    """Connection settings for Snyk REST and OAuth calls."""
    base_url: str = DEFAULT_REST_BASE_URL
    version: str = DEFAULT_REST_VERSION
    page_limit: int = DEFAULT_PAGE_LIMIT
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    oauth_token_url: str = DEFAULT_OAUTH_TOKEN_URL
    oauth_client_id: Optional[str] = None

    @classmethod
    def from_env(cls) -> "SnykApiConfig":
        return cls(
            base_url=os.environ.get("SNYK_AUTO_ORG_API_URL", "").strip() or DEFAULT_REST_BASE_URL,
            oauth_token_url=os.environ.get("SNYK_AUTO_ORG_OAUTH_URL", "").strip() or DEFAULT_OAUTH_TOKEN_URL,
            oauth_client_id=os.environ.get("SNYK_OAUTH_CLIENT_ID", "").strip() or None,
        )


# Go writes RFC 3339 with up to nine fractional digits; fromisoformat() wants
# at most six on older interpreters.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def parse_expiry(raw: Any) -> Optional[datetime]:
    if not raw or not isinstance(raw, str):
        return None
    s = raw.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    s = _FRACTION_RE.sub(r"\1", s)
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_expiry(dt: Optional[datetime]) -> str:
    if dt is None:
        return ""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


@dataclass(frozen=True)
class TokenStorage:
    """The ``INTERNAL_OAUTH_TOKEN_STORAGE`` record kept by the Snyk CLI."""
    access_token: str
    token_type: str = "bearer"
    refresh_token: str = ""
    expiry: Optional[datetime] = None

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "TokenStorage":
        return cls(
            access_token=str(d.get("access_token") or ""),
            token_type=str(d.get("token_type") or "bearer"),
            refresh_token=str(d.get("refresh_token") or ""),
            expiry=parse_expiry(d.get("expiry")),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "refresh_token": self.refresh_token,
            "expiry": format_expiry(self.expiry),
        }


@dataclass(frozen=True)
class TokenResponse:
    """Body of a successful OAuth2 token endpoint response."""
    access_token: str
    expires_in: int
    refresh_token: str = ""
    refresh_expires_in: int = 0
    token_type: str = "bearer"
    scope: str = ""
    bot_id: str = ""

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "TokenResponse":
        return cls(
            access_token=str(d.get("access_token") or ""),
            expires_in=int(d.get("expires_in") or 0),
            refresh_token=str(d.get("refresh_token") or ""),
            refresh_expires_in=int(d.get("refresh_expires_in") or 0),
            token_type=str(d.get("token_type") or "bearer"),
            scope=str(d.get("scope") or ""),
            bot_id=str(d.get("bot_id") or ""),
        )
