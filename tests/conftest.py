"""Configuration de test pour pytest avec gestion des chemins.

Ce module configure pytest pour résoudre les imports `crowdvote` en ajoutant la racine du projet au
sys.path, et fournit les collaborateurs en mémoire (cache à horloge figée, SQLite mémoire, blob
store et ledger factices) câblés comme en production.
"""

import os
import sys
from datetime import UTC, datetime, timedelta

import pytest

# Ensure project root is on sys.path so that
# imports like `from crowdvote...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from crowdvote.core.clock import FrozenClock  # noqa: E402
from crowdvote.domain.content_service import ContentService  # noqa: E402
from crowdvote.domain.entities import ContentCreate, Signer  # noqa: E402
from crowdvote.domain.invalidation import ContentCacheInvalidator  # noqa: E402
from crowdvote.domain.status_sync import StatusSynchronizer  # noqa: E402
from crowdvote.domain.voting_service import VotingService  # noqa: E402
from crowdvote.infra.blob.memory_store import InMemoryBlobStore  # noqa: E402
from crowdvote.infra.cache import InMemoryCache  # noqa: E402
from crowdvote.infra.commit_store import CommitStore  # noqa: E402
from crowdvote.infra.ledger.memory_ledger import InMemoryLedger  # noqa: E402
from crowdvote.infra.repo.content_repo import SqlContentRepository  # noqa: E402
from crowdvote.infra.repo.db import get_engine  # noqa: E402
from crowdvote.infra.repo.models import Base  # noqa: E402

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)
CREATOR = "0x00000000000000000000000000000000000000C0"
VOTER = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"


@pytest.fixture
def clock() -> FrozenClock:
    """Horloge figée à T0 (avancée explicitement par les tests)."""
    return FrozenClock(T0)


@pytest.fixture
def cache(clock: FrozenClock) -> InMemoryCache:
    return InMemoryCache(clock)


@pytest.fixture
def engine():
    """Base SQLite en mémoire avec le schéma complet."""
    eng = get_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def repo(engine) -> SqlContentRepository:
    return SqlContentRepository(engine)


@pytest.fixture
def blobs() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger(first_content_id=100)


@pytest.fixture
def invalidator(cache: InMemoryCache) -> ContentCacheInvalidator:
    return ContentCacheInvalidator(cache)


@pytest.fixture
def synchronizer(repo, invalidator, ledger, clock) -> StatusSynchronizer:
    return StatusSynchronizer(repo, invalidator, ledger=ledger, clock=clock)


@pytest.fixture
def content_service(repo, cache, blobs, ledger, clock, synchronizer) -> ContentService:
    return ContentService(repo, cache, blobs, ledger, clock=clock, synchronizer=synchronizer)


@pytest.fixture
def commit_store(cache: InMemoryCache) -> CommitStore:
    return CommitStore(cache)


@pytest.fixture
def voting_service(commit_store, ledger, repo, invalidator, clock) -> VotingService:
    return VotingService(commit_store, ledger, repo, invalidator, clock=clock)


@pytest.fixture
def creator() -> Signer:
    return Signer(address=CREATOR)


@pytest.fixture
def make_content(content_service: ContentService, creator: Signer):
    """Fabrique de contenus: fenêtre relative à T0 en secondes."""

    def _make(start: int = 10, end: int = 70, **fields):
        data = ContentCreate(
            title=fields.pop("title", "A claim"),
            voting_start_time=T0 + timedelta(seconds=start),
            voting_end_time=T0 + timedelta(seconds=end),
            **fields,
        )
        return content_service.create_content(data, creator)

    return _make
