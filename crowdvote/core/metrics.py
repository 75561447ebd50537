"""
Métriques Prometheus de l'application.

Ce module définit les compteurs utilisés pour suivre le cache de lecture, le
protocole commit-reveal et la synchronisation du cycle de vie.
"""

from prometheus_client import Counter

CACHE_HITS = Counter("content_cache_hits_total", "Read cache hits", ["family"])
CACHE_MISSES = Counter("content_cache_misses_total", "Read cache misses", ["family"])
CACHE_INVALIDATIONS = Counter(
    "content_cache_invalidations_total", "Read cache invalidations", ["scope"]
)
CACHE_INVALIDATION_FAILURES = Counter(
    "content_cache_invalidation_failures_total", "Purges skipped after a committed write"
)

CONTENT_CREATED = Counter("content_created_total", "Content items persisted after ledger ack")
DEGRADED_READS = Counter(
    "content_degraded_reads_total",
    "Reads served with an empty secondary field",
    ["field"],
)
STATUS_FLIPS = Counter(
    "content_status_flips_total", "Items deactivated by the lifecycle sync", ["reason"]
)

VOTE_COMMITS = Counter("vote_commits_total", "Vote commitments stored")
VOTE_REVEALS = Counter("vote_reveals_total", "Reveal attempts by outcome", ["result"])
