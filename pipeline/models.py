"""pipeline.models

Lightweight data structures passed between the CLI and the resolution engine.

The CLI used to be the only place that knew which flags influenced resolution.
These dataclasses give that a small, explicit vocabulary:
- what the user asked for (ResolutionRequest)
- what was decided, and why (Resolution)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

SOURCE_EXPLICIT = "explicit"
SOURCE_GIT_URL = "git-url"
SOURCE_DEFAULT = "default"
SOURCE_NONE = "none"


@dataclass(frozen=True)
class ResolutionRequest:
    """Inputs to organization resolution.

    ``org`` is an id, name or slug given with ``--org``. ``git_url`` is an
    explicit repository URL; when empty and ``auto_detect_git`` is true, the
    remote of the current checkout is used.
    """

    org: Optional[str] = None
    git_url: Optional[str] = None
    auto_detect_git: bool = True


@dataclass(frozen=True)
class Resolution:
    """Outcome of organization resolution."""

    org_id: Optional[str] = None
    source: str = SOURCE_NONE
    org_name: Optional[str] = None
    git_url: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return bool(self.org_id)

    def describe(self) -> str:
        if not self.org_id:
            return "no organization"
        label = f"{self.org_name} ({self.org_id})" if self.org_name else self.org_id
        return f"{label} via {self.source}"
