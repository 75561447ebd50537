"""
Conteneur d'injection de dépendances et configuration application.

Instancie les composants centraux (settings, cache, dépôt SQL, blob store,
ledger, services) et expose un singleton `container` utilisé par les scripts.
"""

from __future__ import annotations

import structlog

from crowdvote.core.clock import Clock, SystemClock
from crowdvote.core.settings import Settings, get_settings
from crowdvote.domain.content_service import ContentService
from crowdvote.domain.errors import UpstreamUnavailable
from crowdvote.domain.invalidation import ContentCacheInvalidator
from crowdvote.domain.status_sync import StatusSynchronizer
from crowdvote.domain.voting_service import VotingService
from crowdvote.infra.blob.base import BlobStore
from crowdvote.infra.blob.ipfs_client import IpfsHttpBlobStore
from crowdvote.infra.blob.memory_store import InMemoryBlobStore
from crowdvote.infra.cache import Cache, InMemoryCache, RedisCache
from crowdvote.infra.commit_store import CommitStore
from crowdvote.infra.ledger.base import Ledger
from crowdvote.infra.ledger.http_gateway import HttpLedgerGateway
from crowdvote.infra.ledger.memory_ledger import InMemoryLedger
from crowdvote.infra.repo.content_repo import SqlContentRepository
from crowdvote.infra.repo.db import get_engine
from crowdvote.infra.repo.models import Base


class Container:
    def __init__(self, settings: Settings | None = None, clock: Clock | None = None):
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()
        log = structlog.get_logger(__name__)

        self.cache = self._build_cache()
        self.engine = get_engine(self.settings.DATABASE_URL)
        if self.engine.url.get_backend_name() == "sqlite":
            # dev/tests: schéma créé à la volée; ailleurs via Alembic
            Base.metadata.create_all(self.engine)
        self.repo = SqlContentRepository(self.engine)
        self.blob_store = self._build_blob_store()
        self.ledger = self._build_ledger()

        self.commit_store = CommitStore(self.cache, ttl_seconds=self.settings.COMMIT_TTL_SECONDS)
        self.invalidator = ContentCacheInvalidator(self.cache)
        self.synchronizer = StatusSynchronizer(
            self.repo, self.invalidator, ledger=self.ledger, clock=self.clock
        )
        self.content_service = ContentService(
            self.repo,
            self.cache,
            self.blob_store,
            self.ledger,
            clock=self.clock,
            cache_ttl_seconds=self.settings.CACHE_TTL_SECONDS,
            min_voting_seconds=self.settings.MIN_VOTING_PERIOD_SECONDS,
            max_voting_seconds=self.settings.MAX_VOTING_PERIOD_SECONDS,
            default_voting_seconds=self.settings.DEFAULT_VOTING_PERIOD_SECONDS,
            network=self.settings.BLOCKCHAIN_NETWORK,
            synchronizer=self.synchronizer,
        )
        self.voting_service = VotingService(
            self.commit_store, self.ledger, self.repo, self.invalidator, clock=self.clock
        )
        log.info(
            "container_ready",
            app=self.settings.APP_NAME,
            storage_backend=self.storage_backend,
            ledger=type(self.ledger).__name__,
            blob_store=type(self.blob_store).__name__,
        )

    def _build_cache(self) -> Cache:
        if self.settings.REDIS_URL:
            try:
                cache = RedisCache(self.settings.REDIS_URL)
                cache.ping()
                self.storage_backend = "redis"
                return cache
            except UpstreamUnavailable as err:
                if self.settings.REQUIRE_REDIS:
                    raise RuntimeError("Redis required but unavailable") from err
                self.storage_backend = "memory-fallback"
                return InMemoryCache(self.clock)
        if self.settings.REQUIRE_REDIS:
            raise RuntimeError("Redis required but REDIS_URL not set")
        self.storage_backend = "memory"
        return InMemoryCache(self.clock)

    def _build_blob_store(self) -> BlobStore:
        if self.settings.IPFS_API_URL:
            return IpfsHttpBlobStore(
                self.settings.IPFS_API_URL, timeout_seconds=self.settings.HTTP_TIMEOUT_SECONDS
            )
        return InMemoryBlobStore()

    def _build_ledger(self) -> Ledger:
        if self.settings.LEDGER_GATEWAY_URL:
            return HttpLedgerGateway(
                self.settings.LEDGER_GATEWAY_URL,
                token=self.settings.LEDGER_GATEWAY_TOKEN,
                network=self.settings.BLOCKCHAIN_NETWORK,
                timeout_seconds=self.settings.HTTP_TIMEOUT_SECONDS,
            )
        return InMemoryLedger()


container = Container()
