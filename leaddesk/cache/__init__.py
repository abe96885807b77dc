from leaddesk.cache.policy import ADMIN_POLICY, DEFAULT_POLICY, CachePolicy
from leaddesk.cache.prefetch import Prefetcher
from leaddesk.cache.query import CachedQuery, QueryState, QueryStatus
from leaddesk.cache.store import CacheEntry, CacheStore

__all__ = [
    "ADMIN_POLICY",
    "DEFAULT_POLICY",
    "CacheEntry",
    "CachePolicy",
    "CacheStore",
    "CachedQuery",
    "Prefetcher",
    "QueryState",
    "QueryStatus",
]
