"""snyk_auto_org.domain

Domain objects shared by the API client, the cache and the resolution engine.

Key idea
--------
The REST API returns JSON:API records (``{"id": ..., "attributes": {...}}``).
The rest of the code never looks at those shapes; it works with the flat
dataclasses defined here.
"""

from __future__ import annotations

from .organization import Organization, OrgTarget, Target

__all__ = [
    "Organization",
    "OrgTarget",
    "Target",
]
