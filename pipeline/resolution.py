"""pipeline.resolution

Decide which Snyk organization an invocation should be scoped to.

Resolution order (first step that yields an organization wins):

1. ``--org``: exact match on id, name or slug. A miss is fatal.
2. Repository URL (``--git-url``, or the remote of the current checkout):
   cached target lookup, then a per-organization scan of targets.
3. ``default_org`` from the config file. A miss falls through.
4. No organization.

Organization and target lists are served from the cache while fresh and
refetched from the API (and stored) once their TTL has passed.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Callable, List, Optional

from snyk_auto_org.cache import OrgCache
from snyk_auto_org.domain import Organization, OrgTarget, Target
from snyk_auto_org.errors import (
    APIError,
    NoRemoteConfigured,
    OrganizationNotFound,
    TransportError,
    VCSUnavailable,
)
from snyk_auto_org.urls import normalize_or_raw, urls_match
from tools.core_git import get_raw_remote_url
from tools.snyk.api import SnykClient

from .models import (
    SOURCE_DEFAULT,
    SOURCE_EXPLICIT,
    SOURCE_GIT_URL,
    Resolution,
    ResolutionRequest,
)

logger = logging.getLogger(__name__)

RemoteDetector = Callable[[Optional[Path]], str]


class OrganizationResolver:
    def __init__(
        self,
        cache: OrgCache,
        client: SnykClient,
        *,
        cache_ttl: timedelta,
        default_org: str = "",
        detect_remote: RemoteDetector = get_raw_remote_url,
        cwd: Optional[Path] = None,
    ) -> None:
        self.cache = cache
        self.client = client
        self.cache_ttl = cache_ttl
        self.default_org = (default_org or "").strip()
        self._detect_remote = detect_remote
        self._cwd = cwd

    # ------------------------------------------------------------------
    # Cache-or-API accessors
    # ------------------------------------------------------------------

    def get_organizations(self) -> List[Organization]:
        """Organizations from the cache when fresh, otherwise from the API."""
        if not self.cache.is_organization_list_expired(self.cache_ttl):
            orgs = self.cache.get_organizations()
            if orgs:
                logger.info("Using cached organization list (%d organizations)", len(orgs))
                return orgs

        logger.info("Fetching organizations from Snyk API")
        orgs = self.client.get_organizations()
        self.cache.store_organizations(orgs)
        return orgs

    def get_targets(self, org_id: str) -> List[Target]:
        """Targets of one organization from the cache when fresh, otherwise from the API."""
        if not self.cache.is_targets_expired(org_id, self.cache_ttl):
            targets = self.cache.get_targets_by_organization(org_id)
            if targets:
                logger.info("Using cached targets for organization %s", org_id)
                return targets

        logger.info("Fetching targets for organization %s from Snyk API", org_id)
        targets = self.client.get_targets(org_id)
        self.cache.store_targets(org_id, targets)
        return targets

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_organization(self, identifier: str) -> Organization:
        """Exact match on id, name or slug; raises OrganizationNotFound."""
        wanted = identifier.strip()
        for org in self.get_organizations():
            if org.matches(wanted):
                return org
        raise OrganizationNotFound(wanted)

    def find_org_by_git_url(self, url: str) -> Optional[OrgTarget]:
        """First organization with a target for *url*, or None.

        Organizations whose targets cannot be fetched are skipped.
        """
        matches = self.cache.find_targets_by_url(url)
        if matches:
            hit = matches[0]
            logger.info("Found organization %s (%s) in cache for %s", hit.org_name, hit.org_id, url)
            return hit

        for org in self.get_organizations():
            try:
                targets = self.get_targets(org.id)
            except (APIError, TransportError) as e:
                logger.info("Warning: could not get targets for organization %s: %s", org.name, e)
                continue

            for t in targets:
                if urls_match(t.url, url):
                    logger.info("Found organization %s (%s) for %s", org.name, org.id, url)
                    return OrgTarget(
                        org_id=org.id,
                        org_name=org.name,
                        target_url=t.url,
                        target_name=t.display_name,
                    )
        return None

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _candidate_url(self, request: ResolutionRequest) -> Optional[str]:
        """Explicit URL, else the detected remote. Raises RemoteOriginError."""
        if request.git_url and request.git_url.strip():
            return normalize_or_raw(request.git_url)
        if not request.auto_detect_git:
            return None

        raw = self._detect_remote(self._cwd)
        url = normalize_or_raw(raw)
        logger.info("Detected git repository URL: %s", url)
        return url

    def resolve(self, request: ResolutionRequest) -> Resolution:
        if request.org and request.org.strip():
            org = self.find_organization(request.org)
            logger.info("Using explicitly specified organization: %s (%s)", org.name, org.id)
            return Resolution(org_id=org.id, source=SOURCE_EXPLICIT, org_name=org.name)

        try:
            url = self._candidate_url(request)
        except (NoRemoteConfigured, VCSUnavailable) as e:
            logger.info("Could not detect git repository URL: %s", e)
            logger.info("Running without organization")
            return Resolution()

        if url:
            try:
                match = self.find_org_by_git_url(url)
            except (APIError, TransportError) as e:
                logger.info("Could not look up organization for %s: %s", url, e)
                match = None

            if match is not None:
                return Resolution(
                    org_id=match.org_id,
                    source=SOURCE_GIT_URL,
                    org_name=match.org_name,
                    git_url=url,
                )
            logger.info("No organization has a target matching %s", url)

        if self.default_org:
            try:
                org = self.find_organization(self.default_org)
            except (OrganizationNotFound, APIError, TransportError) as e:
                logger.info("Default organization not usable: %s", e)
            else:
                logger.info("Using default organization: %s (%s)", org.name, org.id)
                return Resolution(
                    org_id=org.id,
                    source=SOURCE_DEFAULT,
                    org_name=org.name,
                    git_url=url,
                )

        logger.info("Running without organization")
        return Resolution(git_url=url)
