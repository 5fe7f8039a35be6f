"""snyk_auto_org.domain.organization

Organizations, targets, and the (organization, target) pair a URL lookup yields.

An organization is identified by ``id``. ``name`` and ``slug`` are what users
type on the command line, but neither is guaranteed to be unique.

A target associates one external repository URL with one organization. The
same URL may be registered under several organizations; each registration is a
distinct target row.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional


def _str_or_empty(v: Any) -> str:
    if v is None:
        return ""
    return str(v)


def _attributes(record: Mapping[str, Any]) -> Mapping[str, Any]:
    attrs = record.get("attributes")
    return attrs if isinstance(attrs, Mapping) else {}


@dataclass(frozen=True)
class Organization:
    """A Snyk organization."""

    id: str
    name: str
    slug: str

    @classmethod
    def from_api(cls, record: Mapping[str, Any]) -> "Organization":
        """Build from a REST ``/orgs`` record."""
        if not isinstance(record, Mapping):
            raise TypeError(f"Organization.from_api expected mapping, got {type(record)!r}")
        attrs = _attributes(record)
        return cls(
            id=_str_or_empty(record.get("id")),
            name=_str_or_empty(attrs.get("name")),
            slug=_str_or_empty(attrs.get("slug")),
        )

    def matches(self, identifier: str) -> bool:
        """Exact-string match on id, name or slug."""
        return identifier in (self.id, self.name, self.slug)


@dataclass(frozen=True)
class Target:
    """A monitored repository registered in an organization.

    ``org_id`` is only known once the target has been tied to the organization
    it was fetched for (the REST payload itself does not carry it).
    """

    id: str
    display_name: str
    url: str
    org_id: Optional[str] = None

    @classmethod
    def from_api(cls, record: Mapping[str, Any], *, org_id: Optional[str] = None) -> "Target":
        """Build from a REST ``/orgs/{id}/targets`` record.

        Older API versions spell the display name ``displayName``.
        """
        if not isinstance(record, Mapping):
            raise TypeError(f"Target.from_api expected mapping, got {type(record)!r}")
        attrs = _attributes(record)
        display_name = attrs.get("display_name")
        if display_name is None:
            display_name = attrs.get("displayName")
        return cls(
            id=_str_or_empty(record.get("id")),
            display_name=_str_or_empty(display_name),
            url=_str_or_empty(attrs.get("url")),
            org_id=org_id,
        )


@dataclass(frozen=True)
class OrgTarget:
    """An organization that owns a target matching a looked-up URL."""

    org_id: str
    org_name: str
    target_url: str
    target_name: str
