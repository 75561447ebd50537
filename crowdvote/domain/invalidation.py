"""Invalidation du cache de lecture après mutation durable d'un contenu.

Un même contenu peut apparaître sous de nombreuses combinaisons de filtres:
toute mutation purge donc la famille complète des listes, et supprime la clé
de détail du contenu concerné. À appeler uniquement après le commit SQL.

`after_write` ne lève jamais: l'écriture est déjà durable, et une purge
manquée est bornée par le TTL du cache.
"""

from __future__ import annotations

import structlog

from crowdvote.core.metrics import CACHE_INVALIDATION_FAILURES, CACHE_INVALIDATIONS
from crowdvote.domain.cache_keys import LIST_PATTERN, detail_cache_key
from crowdvote.domain.errors import UpstreamUnavailable
from crowdvote.infra.cache import Cache


class ContentCacheInvalidator:
    """Purge les entrées de cache dépendant d'un contenu."""

    def __init__(self, cache: Cache) -> None:
        self.cache = cache
        self._log = structlog.get_logger(__name__).bind(component="cache_invalidator")

    def lists(self) -> int:
        CACHE_INVALIDATIONS.labels(scope="list").inc()
        return self.cache.delete_by_pattern(LIST_PATTERN)

    def item(self, content_id: int) -> None:
        CACHE_INVALIDATIONS.labels(scope="detail").inc()
        self.cache.delete(detail_cache_key(content_id))

    def content_changed(self, *content_ids: int) -> None:
        """Mutation d'un ou plusieurs contenus existants (statut, votes)."""
        for content_id in content_ids:
            self.item(content_id)
        self.lists()

    def after_write(self, *content_ids: int) -> bool:
        """Purge après écriture commitée; False si le cache n'a pas répondu."""
        try:
            self.content_changed(*content_ids)
        except UpstreamUnavailable:
            CACHE_INVALIDATION_FAILURES.inc()
            self._log.warning("cache_invalidation_failed", content_ids=list(content_ids))
            return False
        return True
