"""snyk_auto_org.io

Filesystem helpers (atomic writes) shared by config handling.
"""

from __future__ import annotations

from .fs import read_json, write_json_atomic

__all__ = ["read_json", "write_json_atomic"]
