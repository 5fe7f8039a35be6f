"""snyk_auto_org.cache

Local persistence for organization and target data.
"""

from __future__ import annotations

from .sqlite import ORGS_UPDATE_KEY, OrgCache, targets_update_key

__all__ = ["ORGS_UPDATE_KEY", "OrgCache", "targets_update_key"]
