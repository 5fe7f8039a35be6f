"""snyk_auto_org

Core package for the Snyk organization auto-selection wrapper.

The wrapper runs the Snyk CLI with ``SNYK_CFG_ORG`` set to the organization that
owns the current repository. This package owns the pieces that do not talk to
the outside world directly:

* domain types (organizations, targets)
* repository URL normalization
* the on-disk configuration file
* the SQLite cache that mirrors organization/target data from the REST API

Adapters for git, the Snyk REST API and the Snyk CLI live under ``tools/``; the
resolution logic that glues everything together lives under ``pipeline/``.
"""

from __future__ import annotations

__version__ = "0.3.0"
