"""snyk_auto_org.cache.sqlite

SQLite-backed cache of organizations and targets.

Cache strategy
--------------
- Storage: one SQLite file (``~/.config/snyk-auto-org/cache.db`` by default)
- Tables: ``organizations``, ``targets`` (organization x repository URL),
  ``metadata`` (last successful refresh timestamps)
- Freshness: ``orgs_last_update`` for the organization list and
  ``targets_update_<org_id>`` per organization, each checked against a TTL
- Writes: rows and their timestamp commit in one transaction, or not at all

Rows are only ever written as a side effect of a successful API fetch. Stale
targets of an organization that later disappears are left alone; ``reset()``
is the only way to remove data.

Every ``sqlite3.Error`` surfaces as :class:`~snyk_auto_org.errors.CacheError`.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from snyk_auto_org.domain import Organization, OrgTarget, Target
from snyk_auto_org.errors import CacheError
from snyk_auto_org.urls import url_key

logger = logging.getLogger(__name__)

ORGS_UPDATE_KEY = "orgs_last_update"
TARGETS_UPDATE_PREFIX = "targets_update_"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS organizations (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    slug TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS targets (
    id TEXT PRIMARY KEY,
    org_id TEXT NOT NULL,
    display_name TEXT NOT NULL,
    url TEXT NOT NULL,
    FOREIGN KEY (org_id) REFERENCES organizations(id)
);

CREATE INDEX IF NOT EXISTS idx_targets_org_id ON targets(org_id);
"""

UPSERT_ORG_SQL = """
INSERT INTO organizations (id, name, slug)
VALUES (?, ?, ?)
ON CONFLICT(id) DO UPDATE SET name = excluded.name, slug = excluded.slug
"""

UPSERT_TARGET_SQL = """
INSERT INTO targets (id, org_id, display_name, url)
VALUES (?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
    org_id = excluded.org_id,
    display_name = excluded.display_name,
    url = excluded.url
"""

UPSERT_METADATA_SQL = """
INSERT INTO metadata (key, value)
VALUES (?, ?)
ON CONFLICT(key) DO UPDATE SET value = excluded.value
"""

SELECT_TARGETS_BY_URL_SQL = """
SELECT t.id, t.org_id, t.display_name, t.url, o.name AS org_name
FROM targets t
JOIN organizations o ON t.org_id = o.id
WHERE url_key(t.url) = ?
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def targets_update_key(org_id: str) -> str:
    return f"{TARGETS_UPDATE_PREFIX}{org_id}"


class OrgCache:
    """Persistent organization/target cache.

    Usage:
        with OrgCache(cfg.cache_path) as cache:
            if cache.is_organization_list_expired(cfg.cache_ttl):
                cache.store_organizations(client.get_organizations())
            orgs = cache.get_organizations()
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        *,
        now_fn: Callable[[], datetime] = _utcnow,
        timeout_seconds: float = 5.0,
    ) -> None:
        self.db_path = Path(db_path)
        self._now = now_fn
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), timeout=timeout_seconds)
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.create_function("url_key", 1, url_key)
            self._conn.executescript(SCHEMA_SQL)
        except (OSError, sqlite3.Error) as e:
            raise CacheError(f"failed to open cache database {self.db_path}: {e}") from e
        logger.debug("Cache database opened at %s", self.db_path)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "OrgCache":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Organizations
    # ------------------------------------------------------------------

    def store_organizations(self, orgs: Iterable[Organization]) -> None:
        """Upsert organizations and bump ``orgs_last_update`` atomically."""
        rows = [(o.id, o.name, o.slug) for o in orgs]
        try:
            with self._conn:
                self._conn.executemany(UPSERT_ORG_SQL, rows)
                self._conn.execute(UPSERT_METADATA_SQL, (ORGS_UPDATE_KEY, self._now().isoformat()))
        except sqlite3.Error as e:
            raise CacheError(f"failed to store organizations: {e}") from e

    def get_organizations(self) -> List[Organization]:
        try:
            rows = self._conn.execute("SELECT id, name, slug FROM organizations").fetchall()
        except sqlite3.Error as e:
            raise CacheError(f"failed to select organizations: {e}") from e
        return [Organization(id=r[0], name=r[1], slug=r[2]) for r in rows]

    def is_organization_list_expired(self, ttl: timedelta) -> bool:
        return self._is_expired(ORGS_UPDATE_KEY, ttl)

    # ------------------------------------------------------------------
    # Targets
    # ------------------------------------------------------------------

    def store_targets(self, org_id: str, targets: Iterable[Target]) -> None:
        """Upsert targets under *org_id* and bump its timestamp atomically.

        An empty list is a no-op: existing rows and the timestamp are kept.
        """
        rows = [(t.id, org_id, t.display_name, t.url) for t in targets]
        if not rows:
            return
        try:
            with self._conn:
                self._conn.executemany(UPSERT_TARGET_SQL, rows)
                self._conn.execute(
                    UPSERT_METADATA_SQL,
                    (targets_update_key(org_id), self._now().isoformat()),
                )
        except sqlite3.Error as e:
            raise CacheError(f"failed to store targets for organization {org_id}: {e}") from e

    def get_targets(self) -> List[Target]:
        return self._select_targets("SELECT id, org_id, display_name, url FROM targets", ())

    def get_targets_by_organization(self, org_id: str) -> List[Target]:
        return self._select_targets(
            "SELECT id, org_id, display_name, url FROM targets WHERE org_id = ?",
            (org_id,),
        )

    def is_targets_expired(self, org_id: str, ttl: timedelta) -> bool:
        return self._is_expired(targets_update_key(org_id), ttl)

    def find_targets_by_url(self, url: str) -> List[OrgTarget]:
        """Targets whose URL matches *url* after normalizing both sides.

        Stored URLs are compared through the ``url_key`` SQL function, so a
        target saved as ``http://GitHub.com/acme/widgets.git/`` matches
        ``git@github.com:acme/widgets.git``.
        """
        try:
            rows = self._conn.execute(SELECT_TARGETS_BY_URL_SQL, (url_key(url),)).fetchall()
        except sqlite3.Error as e:
            raise CacheError(f"failed to select targets for URL {url}: {e}") from e
        return [
            OrgTarget(org_id=r[1], org_name=r[4], target_url=r[3], target_name=r[2])
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Delete every target, organization and timestamp in one transaction."""
        try:
            with self._conn:
                self._conn.execute("DELETE FROM targets")
                self._conn.execute("DELETE FROM organizations")
                self._conn.execute("DELETE FROM metadata")
        except sqlite3.Error as e:
            raise CacheError(f"failed to reset cache: {e}") from e

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _select_targets(self, sql: str, params: tuple) -> List[Target]:
        try:
            rows = self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise CacheError(f"failed to select targets: {e}") from e
        return [Target(id=r[0], org_id=r[1], display_name=r[2], url=r[3]) for r in rows]

    def _get_metadata(self, key: str) -> Optional[str]:
        try:
            row = self._conn.execute("SELECT value FROM metadata WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise CacheError(f"failed to read cache metadata {key!r}: {e}") from e
        return row[0] if row else None

    def _is_expired(self, key: str, ttl: timedelta) -> bool:
        raw = self._get_metadata(key)
        if raw is None:
            return True
        try:
            last_update = datetime.fromisoformat(raw)
        except ValueError:
            logger.debug("Ignoring unparseable cache timestamp %s=%r", key, raw)
            return True
        if last_update.tzinfo is None:
            last_update = last_update.replace(tzinfo=timezone.utc)
        return self._now() - last_update > ttl
