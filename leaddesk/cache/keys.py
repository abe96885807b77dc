"""Cache keys for backend reads.

The endpoint path is the key, verbatim. There is no query-string
normalisation: `api/leads?limit=10` and `api/leads?limit=10&` are distinct
entries. The console reads a small fixed set of endpoints, listed below.
"""

from __future__ import annotations

from typing import Optional

PROJECTS = "api/projects"
PROJECTS_DELIVERED = "api/projects/delivered"
AUTH_STATS = "api/auth/stats"
AUTH_USERS = "api/auth/users"
LEADS = "api/leads"
LEADS_STATS = "api/leads/stats"


def build_key(endpoint: Optional[str]) -> str:
    return str(endpoint or "")


__all__ = [
    "AUTH_STATS",
    "AUTH_USERS",
    "LEADS",
    "LEADS_STATS",
    "PROJECTS",
    "PROJECTS_DELIVERED",
    "build_key",
]
