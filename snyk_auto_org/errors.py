"""snyk_auto_org.errors

Structured exception types for expected failures.

Everything the CLI reports as ``Error: ...`` derives from :class:`AutoOrgError`.
Whether a failure is fatal is decided by the resolution step that catches it,
not by the exception itself.
"""

from __future__ import annotations

from typing import Optional


class AutoOrgError(Exception):
    """Base class for expected snyk-auto-org failures."""

    pass


class ConfigError(AutoOrgError):
    """Raised when the config file cannot be read, parsed or written."""

    pass


class CacheError(AutoOrgError):
    """Raised when the SQLite cache fails (I/O, schema, constraint)."""

    pass


class TokenError(AutoOrgError):
    """Base class for token acquisition failures."""

    pass


class TokenUnavailable(TokenError):
    """Raised when no token can be read from the token store."""

    pass


class TokenExpiredNoRefresh(TokenError):
    """Raised when the access token is expired and there is no refresh token."""

    pass


class TokenRefreshFailed(TokenError):
    """Raised when exchanging the refresh token fails."""

    pass


class APIError(AutoOrgError):
    """Raised for a non-2xx response (or an undecodable body) from the REST API."""

    def __init__(self, status_code: int, body: str, *, url: Optional[str] = None) -> None:
        self.status_code = status_code
        self.body = body
        self.url = url
        super().__init__(f"unexpected status code: {status_code}, body: {body[:500]}")


class TransportError(AutoOrgError):
    """Raised when a request never produced an HTTP response (network, timeout)."""

    pass


class OrganizationNotFound(AutoOrgError):
    """Raised when an organization identifier matches no id, name or slug."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"organization not found: {identifier}")


class InvalidURL(AutoOrgError, ValueError):
    """Raised when a repository URL cannot be confidently normalized."""

    pass


class RemoteOriginError(AutoOrgError):
    """Base class for failures while reading the repository's remote."""

    pass


class NoRemoteConfigured(RemoteOriginError):
    """Raised when the working directory has no git remote."""

    pass


class VCSUnavailable(RemoteOriginError):
    """Raised when git is not installed or cannot be invoked."""

    pass


class LaunchError(AutoOrgError):
    """Raised when the wrapped Snyk CLI cannot be located or started."""

    pass
