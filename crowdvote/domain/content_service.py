"""Service métier des contenus: création, lecture détaillée et listes paginées.

Responsabilités:
- Valider la fenêtre de vote avant tout appel externe.
- Orchestrer blob store → ledger → persistance (tout ou rien jusqu'au ledger).
- Servir les lectures via un cache read-through (TTL 300 s) et l'invalider
  après chaque mutation durable.
"""

from __future__ import annotations

import math
from datetime import timedelta
from typing import Any

import structlog

from crowdvote.core.clock import Clock, SystemClock, as_utc
from crowdvote.core.metrics import CACHE_HITS, CACHE_MISSES, CONTENT_CREATED, DEGRADED_READS
from crowdvote.domain.cache_keys import ContentQuery, detail_cache_key, list_cache_key
from crowdvote.domain.commitment import normalize_address
from crowdvote.domain.entities import (
    ContentCreate,
    ContentPage,
    ContentSnapshot,
    FileUpload,
    Signer,
)
from crowdvote.domain.errors import UpstreamUnavailable
from crowdvote.domain.invalidation import ContentCacheInvalidator
from crowdvote.domain.lifecycle import (
    MAX_VOTING_PERIOD_SECONDS,
    MIN_VOTING_PERIOD_SECONDS,
    status_predicate,
    validate_voting_window,
)
from crowdvote.domain.status_sync import StatusSynchronizer
from crowdvote.domain.views import content_view
from crowdvote.infra.blob.base import BlobStore
from crowdvote.infra.cache import Cache
from crowdvote.infra.ledger.base import Ledger
from crowdvote.infra.repo.content_repo import SqlContentRepository

DEFAULT_CACHE_TTL_SECONDS = 300


class ContentService:
    """Service des contenus soumis au vote."""

    def __init__(
        self,
        repo: SqlContentRepository,
        cache: Cache,
        blob_store: BlobStore,
        ledger: Ledger,
        clock: Clock | None = None,
        cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
        min_voting_seconds: int = MIN_VOTING_PERIOD_SECONDS,
        max_voting_seconds: int = MAX_VOTING_PERIOD_SECONDS,
        default_voting_seconds: int = MIN_VOTING_PERIOD_SECONDS,
        network: str = "localhost",
        synchronizer: StatusSynchronizer | None = None,
    ) -> None:
        """Initialise le service avec ses dépendances.

        Paramètres:
        - repo: dépôt SQL des contenus.
        - cache: cache de lecture (Redis ou mémoire).
        - blob_store: stockage des fichiers et métadonnées (IPFS).
        - ledger: autorité d'identité et de finalisation.
        - clock: horloge injectable (tests).
        """
        self.repo = repo
        self.cache = cache
        self.blobs = blob_store
        self.ledger = ledger
        self.clock = clock or SystemClock()
        self.cache_ttl_seconds = cache_ttl_seconds
        self.min_voting_seconds = min_voting_seconds
        self.max_voting_seconds = max_voting_seconds
        self.default_voting_seconds = default_voting_seconds
        self.network = network
        self.invalidator = ContentCacheInvalidator(cache)
        self.synchronizer = synchronizer or StatusSynchronizer(
            repo, self.invalidator, ledger=ledger, clock=self.clock
        )
        self._log = structlog.get_logger(__name__).bind(component="content_service")

    def create_content(
        self, data: ContentCreate, signer: Signer, file: FileUpload | None = None
    ) -> ContentSnapshot:
        """Crée un contenu: validation, upload, ledger, puis persistance.

        Le contenu n'est persisté qu'après l'acquittement du ledger; en cas
        d'échec du ledger, rien n'est écrit localement et l'appelant peut
        rejouer avec les mêmes entrées.
        """
        now = self.clock.now()
        creator = normalize_address(signer.address)
        start = as_utc(data.voting_start_time) if data.voting_start_time else now
        end = (
            as_utc(data.voting_end_time)
            if data.voting_end_time
            else start + timedelta(seconds=self.default_voting_seconds)
        )
        duration = validate_voting_window(
            start, end, self.min_voting_seconds, self.max_voting_seconds
        )
        # fin alignée sur la durée entière transmise au ledger
        end = start + timedelta(seconds=duration)

        file_hash = None
        if file is not None:
            file_hash = self.blobs.put_bytes(file.data, file.name)
        metadata = {
            "title": data.title,
            "description": data.description,
            "contentType": data.content_type,
            "fileHash": file_hash,
            "creator": creator,
            "timestamp": int(now.timestamp() * 1000),
            "tags": data.tags,
            "votingStartTime": start.isoformat(),
            "votingEndTime": end.isoformat(),
            "votingSystem": "simple",
            "version": "2.0",
            "category": data.category,
            "language": data.language,
            "submissionMethod": "api",
            "blockchainNetwork": self.network,
        }
        metadata_hash = self.blobs.put_json(metadata)
        self.blobs.pin(metadata_hash)
        if file_hash:
            self.blobs.pin(file_hash)

        submission = self.ledger.submit_content(metadata_hash, duration, signer)
        self._log.info(
            "content_submitted",
            content_id=submission.content_id,
            duration_seconds=duration,
            creator=creator,
        )

        item = self.repo.create(
            ContentSnapshot(
                content_id=submission.content_id,
                ipfs_hash=metadata_hash,
                title=data.title,
                description=data.description,
                content_type=data.content_type,
                creator=creator,
                tags=tuple(data.tags),
                submission_time=now,
                voting_start_time=start,
                voting_end_time=end,
                transaction_hash=submission.transaction_hash,
                content_url=f"ipfs://{file_hash}" if file_hash else None,
                thumbnail_url=f"ipfs://{file_hash}" if file_hash else None,
            )
        )
        CONTENT_CREATED.inc()
        self.invalidator.after_write()
        return item

    def get_content(self, content_id: int) -> dict[str, Any] | None:
        """Retourne la vue détaillée d'un contenu, ou None s'il est inconnu.

        Démarche:
        - Cache `content:{id}:data` (servi tel quel dans la fenêtre TTL).
        - Sinon: lecture SQL, synchronisation du statut, enrichissement par
          les métadonnées (dégradé en `{}`) et par les résultats du ledger si
          finalisé (dégradé en `None`).
        """
        key = detail_cache_key(content_id)
        cached = self.cache.get(key)
        if cached is not None:
            CACHE_HITS.labels(family="detail").inc()
            return cached
        CACHE_MISSES.labels(family="detail").inc()

        item = self.repo.get(content_id)
        if item is None:
            return None
        item = self.synchronizer.sync_snapshot(item)

        metadata: dict[str, Any] = {}
        try:
            metadata = self.blobs.get_json(item.ipfs_hash)
        except UpstreamUnavailable:
            DEGRADED_READS.labels(field="metadata").inc()
            self._log.warning("metadata_fetch_failed", content_id=content_id)

        blockchain_results = None
        if item.is_finalized:
            try:
                blockchain_results = self.ledger.get_results(content_id).to_dict()
            except UpstreamUnavailable:
                DEGRADED_READS.labels(field="blockchain_results").inc()
                self._log.warning("results_fetch_failed", content_id=content_id)

        data = content_view(item, self.clock.now())
        data["metadata"] = metadata
        data["blockchain_results"] = blockchain_results
        self.cache.set(key, data, self.cache_ttl_seconds)
        return data

    def list_content(self, query: ContentQuery) -> dict[str, Any]:
        """Liste paginée (résultats + pagination), servie via le cache."""
        key = list_cache_key(query)
        cached = self.cache.get(key)
        if cached is not None:
            CACHE_HITS.labels(family="list").inc()
            return cached
        CACHE_MISSES.labels(family="list").inc()

        now = self.clock.now()
        predicate = status_predicate(query.status, now) if query.status else None
        items = self.repo.find(query, predicate)
        total = self.repo.count(query, predicate)
        total_pages = math.ceil(total / query.limit) if total else 0
        page = ContentPage(
            results=[content_view(i, now) for i in items],
            pagination={
                "page": query.page,
                "limit": query.limit,
                "total": total,
                "total_pages": total_pages,
                "has_next_page": query.page < total_pages,
                "has_prev_page": query.page > 1,
            },
        )
        result = page.to_dict()
        self.cache.set(key, result, self.cache_ttl_seconds)
        return result
