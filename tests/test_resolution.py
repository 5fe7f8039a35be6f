from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from pipeline.models import ResolutionRequest
from pipeline.resolution import OrganizationResolver
from snyk_auto_org.cache import OrgCache
from snyk_auto_org.domain import Organization, Target
from snyk_auto_org.errors import (
    APIError,
    CacheError,
    NoRemoteConfigured,
    OrganizationNotFound,
    TokenUnavailable,
    TransportError,
    VCSUnavailable,
)

TTL = timedelta(hours=24)

ACME = Organization(id="org-1", name="Acme", slug="acme")
ACME_EU = Organization(id="org-7", name="Acme EU", slug="acme-eu")
SANDBOX = Organization(id="org-9", name="Sandbox", slug="sandbox")

WIDGETS_URL = "https://github.com/acme/widgets"


class FakeClient:
    """Stands in for SnykClient; counts API traffic."""

    def __init__(
        self,
        orgs: List[Organization],
        targets: Optional[Dict[str, object]] = None,
        orgs_error: Optional[Exception] = None,
    ) -> None:
        self.orgs = orgs
        self.targets = targets or {}
        self.orgs_error = orgs_error
        self.org_calls = 0
        self.target_calls: List[str] = []

    def get_organizations(self) -> List[Organization]:
        self.org_calls += 1
        if self.orgs_error is not None:
            raise self.orgs_error
        return list(self.orgs)

    def get_targets(self, org_id: str, url_filter: Optional[str] = None) -> List[Target]:
        self.target_calls.append(org_id)
        answer = self.targets.get(org_id, [])
        if isinstance(answer, Exception):
            raise answer
        return list(answer)

    def close(self) -> None:
        pass


class Clock:
    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


def remote(url: str):
    def detect(cwd: Optional[Path]) -> str:
        return url

    return detect


def remote_fails(exc: Exception):
    def detect(cwd: Optional[Path]) -> str:
        raise exc

    return detect


def must_not_detect(cwd: Optional[Path]) -> str:
    raise AssertionError("git remote detection must not run")


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def cache(tmp_path: Path, clock: Clock):
    with OrgCache(tmp_path / "cache.db", now_fn=clock) as c:
        yield c


def _resolver(cache: OrgCache, client: FakeClient, *, default_org: str = "", detect=must_not_detect) -> OrganizationResolver:
    return OrganizationResolver(cache, client, cache_ttl=TTL, default_org=default_org, detect_remote=detect)


def _widgets_target(target_id: str = "t-1", url: str = WIDGETS_URL) -> Target:
    return Target(id=target_id, display_name="acme/widgets", url=url)


# ---------------------------------------------------------------------------
# End-to-end scenarios
# ---------------------------------------------------------------------------


def test_scenario_a_git_remote_selects_owning_org(cache: OrgCache) -> None:
    client = FakeClient([ACME_EU, ACME], targets={"org-1": [_widgets_target()]})
    resolver = _resolver(cache, client, detect=remote("git@github.com:acme/widgets.git"))

    res = resolver.resolve(ResolutionRequest())

    assert res.org_id == "org-1"
    assert res.source == "git-url"
    assert res.git_url == WIDGETS_URL


def test_scenario_a_second_run_is_served_from_cache(cache: OrgCache) -> None:
    client = FakeClient([ACME], targets={"org-1": [_widgets_target()]})
    resolver = _resolver(cache, client, detect=remote("git@github.com:acme/widgets.git"))
    resolver.resolve(ResolutionRequest())
    calls_after_first = (client.org_calls, list(client.target_calls))

    res = resolver.resolve(ResolutionRequest())

    assert res.org_id == "org-1"
    assert (client.org_calls, client.target_calls) == calls_after_first


def test_scenario_b_explicit_slug_skips_git_detection(cache: OrgCache) -> None:
    client = FakeClient([ACME, ACME_EU])
    resolver = _resolver(cache, client, detect=must_not_detect)

    res = resolver.resolve(ResolutionRequest(org="acme-eu"))

    assert res.org_id == "org-7"
    assert res.source == "explicit"
    assert client.target_calls == []


def test_scenario_c_no_remote_and_no_default_runs_unscoped(cache: OrgCache) -> None:
    client = FakeClient([ACME])
    resolver = _resolver(cache, client, detect=remote_fails(NoRemoteConfigured("no git remote configured")))

    res = resolver.resolve(ResolutionRequest())

    assert res.org_id is None
    assert res.source == "none"
    assert client.org_calls == 0


# ---------------------------------------------------------------------------
# Step 1: explicit organization
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("identifier", ["org-7", "Acme EU", "acme-eu"])
def test_explicit_org_matches_id_name_or_slug(cache: OrgCache, identifier: str) -> None:
    res = _resolver(cache, FakeClient([ACME, ACME_EU])).resolve(ResolutionRequest(org=identifier))

    assert res.org_id == "org-7"
    assert res.org_name == "Acme EU"


def test_explicit_org_match_is_exact(cache: OrgCache) -> None:
    with pytest.raises(OrganizationNotFound):
        _resolver(cache, FakeClient([ACME])).resolve(ResolutionRequest(org="ACME"))


def test_explicit_org_not_found_is_fatal_even_with_default(cache: OrgCache) -> None:
    resolver = _resolver(cache, FakeClient([ACME]), default_org="acme")

    with pytest.raises(OrganizationNotFound, match="nope"):
        resolver.resolve(ResolutionRequest(org="nope"))


def test_explicit_org_api_failure_is_fatal(cache: OrgCache) -> None:
    client = FakeClient([], orgs_error=TransportError("timed out"))

    with pytest.raises(TransportError):
        _resolver(cache, client).resolve(ResolutionRequest(org="acme"))


# ---------------------------------------------------------------------------
# Step 2: git URL
# ---------------------------------------------------------------------------


def test_explicit_git_url_is_normalized_and_beats_detection(cache: OrgCache) -> None:
    client = FakeClient([ACME], targets={"org-1": [_widgets_target()]})
    resolver = _resolver(cache, client, detect=must_not_detect)

    res = resolver.resolve(ResolutionRequest(git_url="git@github.com:acme/widgets.git"))

    assert res.org_id == "org-1"
    assert res.git_url == WIDGETS_URL


def test_auto_detect_disabled_skips_detection(cache: OrgCache) -> None:
    resolver = _resolver(cache, FakeClient([ACME]), detect=must_not_detect)

    res = resolver.resolve(ResolutionRequest(auto_detect_git=False))

    assert res.org_id is None


def test_git_unavailable_ends_without_org_even_with_default(cache: OrgCache) -> None:
    resolver = _resolver(
        cache,
        FakeClient([ACME]),
        default_org="acme",
        detect=remote_fails(VCSUnavailable("git is not available")),
    )

    assert resolver.resolve(ResolutionRequest()).org_id is None


def test_unnormalizable_remote_is_compared_raw(cache: OrgCache) -> None:
    raw = "/srv/git/widgets"
    client = FakeClient([ACME], targets={"org-1": [_widgets_target(url=raw)]})
    resolver = _resolver(cache, client, detect=remote(raw))

    res = resolver.resolve(ResolutionRequest())

    assert res.org_id == "org-1"


def test_cached_target_match_skips_api(cache: OrgCache) -> None:
    cache.store_organizations([ACME])
    cache.store_targets(ACME.id, [_widgets_target(url="http://GitHub.com/acme/widgets")])
    client = FakeClient([])

    res = _resolver(cache, client, detect=remote(WIDGETS_URL)).resolve(ResolutionRequest())

    assert res.org_id == "org-1"
    assert client.org_calls == 0
    assert client.target_calls == []


def test_cached_target_with_git_suffix_matches_remote(cache: OrgCache) -> None:
    cache.store_organizations([ACME])
    cache.store_targets(ACME.id, [_widgets_target(url="https://github.com/acme/widgets.git")])
    client = FakeClient([])

    res = _resolver(cache, client, detect=remote("git@github.com:acme/widgets.git")).resolve(ResolutionRequest())

    assert res.org_id == "org-1"
    assert res.source == "git-url"
    assert client.org_calls == 0


@pytest.mark.parametrize(
    "target_url",
    ["https://github.com/acme/widgets.git", "https://github.com/acme/widgets/", "ssh://git@github.com/acme/widgets.git"],
)
def test_api_target_spelling_does_not_matter(cache: OrgCache, target_url: str) -> None:
    client = FakeClient([ACME], targets={"org-1": [_widgets_target(url=target_url)]})

    res = _resolver(cache, client, detect=remote("git@github.com:acme/widgets.git")).resolve(ResolutionRequest())

    assert res.org_id == "org-1"


def test_org_with_failing_targets_is_skipped(cache: OrgCache) -> None:
    client = FakeClient(
        [SANDBOX, ACME],
        targets={"org-9": APIError(403, "forbidden"), "org-1": [_widgets_target()]},
    )

    res = _resolver(cache, client, detect=remote(WIDGETS_URL)).resolve(ResolutionRequest())

    assert res.org_id == "org-1"
    assert client.target_calls == ["org-9", "org-1"]


def test_first_matching_org_wins(cache: OrgCache) -> None:
    client = FakeClient(
        [ACME_EU, ACME],
        targets={"org-7": [_widgets_target("t-7")], "org-1": [_widgets_target("t-1")]},
    )

    res = _resolver(cache, client, detect=remote(WIDGETS_URL)).resolve(ResolutionRequest())

    assert res.org_id == "org-7"
    assert client.target_calls == ["org-7"]


def test_no_match_falls_through_to_default(cache: OrgCache) -> None:
    client = FakeClient([ACME, SANDBOX], targets={"org-1": [_widgets_target(url="https://github.com/acme/other")]})
    resolver = _resolver(cache, client, default_org="sandbox", detect=remote(WIDGETS_URL))

    res = resolver.resolve(ResolutionRequest())

    assert res.org_id == "org-9"
    assert res.source == "default"
    assert res.git_url == WIDGETS_URL


def test_api_failure_during_git_lookup_is_not_fatal(cache: OrgCache) -> None:
    client = FakeClient([], orgs_error=TransportError("timed out"))
    resolver = _resolver(cache, client, default_org="acme", detect=remote(WIDGETS_URL))

    res = resolver.resolve(ResolutionRequest())

    assert res.org_id is None


def test_token_failure_during_git_lookup_is_fatal(cache: OrgCache) -> None:
    client = FakeClient([], orgs_error=TokenUnavailable("run `snyk auth` first"))
    resolver = _resolver(cache, client, detect=remote(WIDGETS_URL))

    with pytest.raises(TokenUnavailable):
        resolver.resolve(ResolutionRequest())


def test_cache_failure_is_fatal(cache: OrgCache) -> None:
    client = FakeClient([ACME], targets={"org-1": [_widgets_target()]})
    resolver = _resolver(cache, client, detect=remote(WIDGETS_URL))
    cache.close()

    with pytest.raises(CacheError):
        resolver.resolve(ResolutionRequest())


# ---------------------------------------------------------------------------
# Step 3 and 4: default organization, then nothing
# ---------------------------------------------------------------------------


def test_unknown_default_org_falls_through_to_none(cache: OrgCache) -> None:
    resolver = _resolver(cache, FakeClient([ACME]), default_org="ghost")

    res = resolver.resolve(ResolutionRequest(auto_detect_git=False))

    assert res.org_id is None
    assert res.source == "none"


def test_default_org_used_without_git(cache: OrgCache) -> None:
    resolver = _resolver(cache, FakeClient([ACME]), default_org="Acme")

    res = resolver.resolve(ResolutionRequest(auto_detect_git=False))

    assert (res.org_id, res.source) == ("org-1", "default")


# ---------------------------------------------------------------------------
# Cache-or-API accessors
# ---------------------------------------------------------------------------


def test_organizations_come_from_cache_while_fresh(cache: OrgCache, clock: Clock) -> None:
    client = FakeClient([ACME])
    resolver = _resolver(cache, client)

    resolver.get_organizations()
    resolver.get_organizations()
    assert client.org_calls == 1

    clock.now = clock.now + TTL + timedelta(minutes=1)
    resolver.get_organizations()
    assert client.org_calls == 2


def test_fresh_but_empty_cache_is_refetched(cache: OrgCache) -> None:
    client = FakeClient([])
    resolver = _resolver(cache, client)

    resolver.get_organizations()
    resolver.get_organizations()

    assert client.org_calls == 2


def test_targets_are_cached_per_organization(cache: OrgCache) -> None:
    client = FakeClient([ACME, ACME_EU], targets={"org-1": [_widgets_target()], "org-7": [_widgets_target("t-7")]})
    resolver = _resolver(cache, client)
    resolver.get_organizations()

    resolver.get_targets("org-1")
    resolver.get_targets("org-1")
    resolver.get_targets("org-7")

    assert client.target_calls == ["org-1", "org-7"]
