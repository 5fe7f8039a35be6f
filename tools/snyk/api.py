"""tools/snyk/api.py

All Snyk REST API calls live here.

Design goals:
  - Keep network I/O separated from caching and resolution policy.
  - Follow ``links.next`` until exhausted; return pages in server order.
  - Fail loudly: non-2xx -> APIError, no response -> TransportError. Whether a
    failure is fatal is the caller's decision.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import unquote, urlencode, urlsplit

import requests

from snyk_auto_org.domain import Organization, OrgTarget, Target
from snyk_auto_org.errors import APIError, TransportError
from snyk_auto_org.logging_utils import redact_token
from snyk_auto_org.urls import urls_match

from .auth import TokenProvider, TokenRefresher, get_snyk_api_token
from .types import SnykApiConfig

logger = logging.getLogger(__name__)

JSON_API_MEDIA_TYPE = "application/vnd.api+json"

_UNICODE_ESCAPE_RE = re.compile(r"\\u([0-9a-fA-F]{4})")


def _is_absolute(url: str) -> bool:
    return url.startswith("http://") or url.startswith("https://")


def resolve_next_link(base_url: str, link: str) -> str:
    """Turn a ``links.next`` value into an absolute URL.

    Handles literal ``\\u0026`` escapes, ``&amp;``, a percent-encoded ``?``,
    and relative links with or without the base path (``/orgs?...`` vs
    ``/rest/orgs?...``).
    """
    link = _UNICODE_ESCAPE_RE.sub(lambda m: chr(int(m.group(1), 16)), link.strip())
    link = link.replace("&amp;", "&")
    if "?" not in link and "%3f" in link.lower():
        link = unquote(link)

    if _is_absolute(link):
        return link

    base = urlsplit(base_url)
    base_path = base.path.rstrip("/")
    if not link.startswith("/"):
        link = "/" + link

    if base_path and (link == base_path or link.startswith(base_path + "/")):
        return f"{base.scheme}://{base.netloc}{link}"
    return base_url.rstrip("/") + link


class SnykClient:
    """Paginated access to ``/orgs`` and ``/orgs/{id}/targets``.

    The bearer token is acquired on the first request (not at construction),
    so callers that are fully served from the cache never touch the token
    store.
    """

    def __init__(
        self,
        cfg: Optional[SnykApiConfig] = None,
        *,
        token_provider: Optional[TokenProvider] = None,
        token_refresher: Optional[TokenRefresher] = None,
        api_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if api_token is None and token_provider is None:
            raise ValueError("SnykClient needs either api_token or token_provider")
        self.cfg = cfg or SnykApiConfig()
        self._token_provider = token_provider
        self._token_refresher = token_refresher
        self._api_token = api_token
        self._session = session or requests.Session()

    @property
    def api_token(self) -> str:
        if self._api_token is None:
            self._api_token = get_snyk_api_token(self._token_provider, self._token_refresher)
        return self._api_token

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Accept": JSON_API_MEDIA_TYPE,
            "Content-Type": JSON_API_MEDIA_TYPE,
        }

    def _get_json(self, url: str) -> Dict[str, Any]:
        headers = self._headers()
        logger.debug("Snyk API Request: GET %s [Auth: Bearer %s]", url, redact_token(self.api_token))

        try:
            resp = self._session.get(url, headers=headers, timeout=self.cfg.timeout_seconds)
        except requests.RequestException as e:
            raise TransportError(f"failed to execute request GET {url}: {e}") from e

        if not (200 <= resp.status_code < 300):
            raise APIError(resp.status_code, resp.text or "", url=url)

        try:
            data = resp.json()
        except ValueError as e:
            raise APIError(resp.status_code, f"failed to decode JSON: {e}", url=url) from e

        if not isinstance(data, dict):
            raise APIError(resp.status_code, "response body is not a JSON object", url=url)
        return data

    def _get_all_pages(self, initial_url: str) -> List[Dict[str, Any]]:
        records: List[Dict[str, Any]] = []
        next_url: Optional[str] = initial_url

        while next_url:
            data = self._get_json(next_url)
            page = data.get("data") or []
            records.extend(r for r in page if isinstance(r, dict))

            links = data.get("links") or {}
            nxt = links.get("next") if isinstance(links, dict) else None
            next_url = resolve_next_link(self.cfg.base_url, nxt) if isinstance(nxt, str) and nxt.strip() else None

        return records

    def _url(self, path: str, **extra: str) -> str:
        params = {"version": self.cfg.version, "limit": str(self.cfg.page_limit)}
        params.update(extra)
        return f"{self.cfg.base_url.rstrip('/')}{path}?{urlencode(params)}"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_organizations(self) -> List[Organization]:
        """All organizations visible to the token, across every page."""
        return [Organization.from_api(r) for r in self._get_all_pages(self._url("/orgs"))]

    def get_targets(self, org_id: str, url_filter: Optional[str] = None) -> List[Target]:
        """All targets of *org_id*; with *url_filter*, only exact URL matches."""
        extra = {"url": url_filter} if url_filter else {}
        records = self._get_all_pages(self._url(f"/orgs/{org_id}/targets", **extra))
        targets = [Target.from_api(r, org_id=org_id) for r in records]
        if url_filter:
            targets = [t for t in targets if t.url == url_filter]
        return targets

    def find_org_with_target_url(self, target_url: str) -> Optional[OrgTarget]:
        """First organization (API order) with a target matching *target_url*.

        Both URLs are normalized before comparing. Organizations whose targets
        cannot be fetched are skipped.
        """
        for org in self.get_organizations():
            try:
                targets = self.get_targets(org.id)
            except (APIError, TransportError) as e:
                logger.debug("Skipping organization %s: %s", org.id, e)
                continue

            for t in targets:
                if urls_match(t.url, target_url):
                    return OrgTarget(
                        org_id=org.id,
                        org_name=org.name,
                        target_url=t.url,
                        target_name=t.display_name,
                    )
        return None
