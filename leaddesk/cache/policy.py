"""TTL policies for cached reads."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CachePolicy:
    """How old cached data may get before a read revalidates it.

    Attributes:
        ttl_seconds: Age after which a mount serves the cached value and
            refreshes it in the background.
    """

    ttl_seconds: float = 30.0


# Project lists change often; admin stats/users rarely.
DEFAULT_POLICY = CachePolicy(ttl_seconds=30.0)
ADMIN_POLICY = CachePolicy(ttl_seconds=5 * 60.0)


__all__ = ["ADMIN_POLICY", "CachePolicy", "DEFAULT_POLICY"]
