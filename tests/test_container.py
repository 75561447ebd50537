"""
Tests pour le conteneur d'injection et la configuration.

Le choix des adaptateurs dépend des paramètres: cache Redis ou mémoire (avec repli), blob store
IPFS ou mémoire, relais du ledger ou ledger en mémoire.
"""

from __future__ import annotations

import importlib
import logging
from pathlib import Path

import pytest
import structlog

from crowdvote.core.clock import FrozenClock
from crowdvote.core.container import Container
from crowdvote.core.logging import redact_vote_secrets, setup_logging
from crowdvote.core.settings import Settings
from crowdvote.domain.entities import ContentCreate, Signer
from crowdvote.domain.errors import UpstreamUnavailable
from crowdvote.infra.blob.ipfs_client import IpfsHttpBlobStore
from crowdvote.infra.blob.memory_store import InMemoryBlobStore
from crowdvote.infra.cache import InMemoryCache, RedisCache
from crowdvote.infra.ledger.http_gateway import HttpLedgerGateway
from crowdvote.infra.ledger.memory_ledger import InMemoryLedger

MEMORY_DB = "sqlite+pysqlite:///:memory:"


def _settings(**overrides) -> Settings:
    base = {
        "DATABASE_URL": MEMORY_DB,
        "REDIS_URL": None,
        "IPFS_API_URL": None,
        "LEDGER_GATEWAY_URL": None,
    }
    base.update(overrides)
    return Settings(**base)


def test_memory_wiring_runs_end_to_end(clock: FrozenClock) -> None:
    c = Container(settings=_settings(), clock=clock)
    assert c.storage_backend == "memory"
    assert isinstance(c.cache, InMemoryCache)
    assert isinstance(c.blob_store, InMemoryBlobStore)
    assert isinstance(c.ledger, InMemoryLedger)
    item = c.content_service.create_content(
        ContentCreate(title="wired"), Signer(address="0x" + "c" * 40)
    )
    assert c.content_service.get_content(item.content_id)["title"] == "wired"


def test_redis_unavailable_falls_back_to_memory(monkeypatch, clock) -> None:
    def _down(self):
        raise UpstreamUnavailable("cache")

    monkeypatch.setattr(RedisCache, "ping", _down)
    c = Container(settings=_settings(REDIS_URL="redis://cache:6379/0"), clock=clock)
    assert c.storage_backend == "memory-fallback"
    assert isinstance(c.cache, InMemoryCache)


def test_redis_required(monkeypatch, clock) -> None:
    def _down(self):
        raise UpstreamUnavailable("cache")

    monkeypatch.setattr(RedisCache, "ping", _down)
    with pytest.raises(RuntimeError):
        Container(
            settings=_settings(REDIS_URL="redis://cache:6379/0", REQUIRE_REDIS=True), clock=clock
        )
    with pytest.raises(RuntimeError):
        Container(settings=_settings(REQUIRE_REDIS=True), clock=clock)


def test_remote_collaborators_selected_by_settings(clock) -> None:
    c = Container(
        settings=_settings(
            IPFS_API_URL="http://ipfs:5001", LEDGER_GATEWAY_URL="http://relay:8080"
        ),
        clock=clock,
    )
    assert isinstance(c.blob_store, IpfsHttpBlobStore)
    assert isinstance(c.ledger, HttpLedgerGateway)
    c.blob_store.close()
    c.ledger.close()


def test_settings_reads_env_file(tmp_path: Path, monkeypatch) -> None:
    """Les paramètres d'un fichier .env explicite (ENV_FILE) sont appliqués."""
    env = tmp_path / ".env.custom"
    env.write_text("CACHE_TTL_SECONDS=120\nMIN_VOTING_PERIOD_SECONDS=30\n", encoding="utf-8")
    monkeypatch.setenv("ENV_FILE", str(env))

    settings_mod = importlib.import_module("crowdvote.core.settings")
    importlib.reload(settings_mod)
    s = settings_mod.get_settings()
    assert s.CACHE_TTL_SECONDS == 120
    assert s.MIN_VOTING_PERIOD_SECONDS == 30
    assert s.COMMIT_TTL_SECONDS == 604800

    monkeypatch.delenv("ENV_FILE")
    importlib.reload(settings_mod)


def test_settings_reject_inconsistent_voting_bounds() -> None:
    with pytest.raises(ValueError):
        _settings(MIN_VOTING_PERIOD_SECONDS=600, DEFAULT_VOTING_PERIOD_SECONDS=60)
    assert _settings(BLOCKCHAIN_NETWORK=" Sepolia ").BLOCKCHAIN_NETWORK == "sepolia"
    assert _settings(APP_ENV="prod").json_logs is True


def test_log_redaction_masks_vote_secrets() -> None:
    event = redact_vote_secrets(None, "info", {"event": "x", "salt": "abc", "content_id": 1})
    assert event == {"event": "x", "salt": "***", "content_id": 1}


def test_debug_flag_drives_log_level() -> None:
    assert _settings(APP_DEBUG=True).log_level == logging.DEBUG
    assert _settings(APP_DEBUG=False).log_level == logging.INFO


def test_setup_logging_binds_app_name() -> None:
    try:
        setup_logging(logging.INFO, app_name="crowdvote-test")
        assert structlog.contextvars.get_contextvars()["app"] == "crowdvote-test"
    finally:
        structlog.contextvars.clear_contextvars()
        structlog.reset_defaults()
