"""Synchronisation des drapeaux persistés avec le cycle de vie dérivé.

Optimisation uniquement: le statut affiché reste correct même si cette
synchronisation n'a jamais tourné (il est toujours recalculé à la lecture).
Chaque écriture est suivie, une fois commitée, de l'invalidation du cache.
"""

from __future__ import annotations

import structlog

from crowdvote.core.clock import Clock, SystemClock
from crowdvote.core.metrics import STATUS_FLIPS
from crowdvote.domain.entities import ContentSnapshot
from crowdvote.domain.invalidation import ContentCacheInvalidator
from crowdvote.domain.lifecycle import ContentStatus, derive_status, needs_deactivation
from crowdvote.infra.ledger.base import Ledger
from crowdvote.infra.repo.content_repo import SqlContentRepository


class StatusSynchronizer:
    """Persiste `is_active=False` pour les contenus expirés ou finalisés."""

    def __init__(
        self,
        repo: SqlContentRepository,
        invalidator: ContentCacheInvalidator,
        ledger: Ledger | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.repo = repo
        self.invalidator = invalidator
        self.ledger = ledger
        self.clock = clock or SystemClock()
        self._log = structlog.get_logger(__name__).bind(component="status_sync")

    def sync_snapshot(self, item: ContentSnapshot) -> ContentSnapshot:
        """Synchronise un contenu déjà chargé; renvoie l'état (éventuellement) mis à jour."""
        now = self.clock.now()
        if not needs_deactivation(item, now):
            return item
        updated = self.repo.deactivate(item.content_id)
        if updated is None:
            return item
        reason = derive_status(item, now).value
        STATUS_FLIPS.labels(reason=reason).inc()
        self._log.info("content_deactivated", content_id=item.content_id, reason=reason)
        self.invalidator.after_write(item.content_id)
        return updated

    def sync_content_status(self, content_id: int) -> ContentSnapshot | None:
        """Charge puis synchronise un contenu; None s'il n'existe pas."""
        item = self.repo.get(content_id)
        if item is None:
            return None
        return self.sync_snapshot(item)

    def sync_all_statuses(self) -> int:
        """Balayage en masse; une seule purge des listes après l'écriture."""
        ids = self.repo.deactivate_ended(self.clock.now())
        if ids:
            STATUS_FLIPS.labels(reason="sweep").inc(len(ids))
            self.invalidator.after_write(*ids)
        self._log.info("status_sweep_done", deactivated=len(ids))
        return len(ids)

    def sync_finalization(self, content_id: int) -> ContentSnapshot | None:
        """Reporte localement la finalisation décidée par le ledger.

        Renvoie None si le contenu est inconnu localement. Lève
        `UpstreamUnavailable` si le ledger ne répond pas.
        """
        if self.ledger is None:
            raise RuntimeError("sync_finalization requires a ledger")
        item = self.repo.get(content_id)
        if item is None:
            return None
        if derive_status(item, self.clock.now()) is ContentStatus.FINALIZED:
            return item
        results = self.ledger.get_results(content_id)
        if not results.finalized:
            return self.sync_snapshot(item)
        updated = self.repo.mark_finalized(content_id, results.total_usd_value)
        STATUS_FLIPS.labels(reason="finalized").inc()
        self._log.info("content_finalized", content_id=content_id)
        self.invalidator.after_write(content_id)
        return updated
