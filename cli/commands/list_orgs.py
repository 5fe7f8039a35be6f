from __future__ import annotations

from pipeline.resolution import OrganizationResolver


def run_list_orgs(resolver: OrganizationResolver) -> int:
    """Print every known organization as ``- name (id)``."""
    orgs = resolver.get_organizations()

    print("Available Snyk organizations:")
    for org in orgs:
        print(f"- {org.name} ({org.id})")
    return 0
