"""
Cache clé/valeur avec TTL (Redis ou mémoire).

Ce module fournit l'interface `Cache` consommée par les services, une
implémentation Redis (valeurs JSON) et une implémentation en mémoire pilotée
par une horloge injectable pour tester l'expiration de façon déterministe.
Une entrée expirée est indiscernable d'une entrée absente, même si l'éviction
physique est paresseuse.
"""

from __future__ import annotations

import fnmatch
import json
import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any

import redis
from redis.exceptions import RedisError

from crowdvote.core.clock import Clock, SystemClock
from crowdvote.domain.errors import UpstreamUnavailable

log = logging.getLogger(__name__)


class Cache(ABC):
    """Interface abstraite du cache."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Retourne la valeur associée, ou None si absente/expirée."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Enregistre/écrase une valeur sérialisable JSON avec TTL."""

    @abstractmethod
    def delete(self, key: str) -> None: ...

    @abstractmethod
    def delete_by_pattern(self, pattern: str) -> int:
        """Supprime toutes les clés correspondant au motif glob; renvoie le nombre purgé."""

    @abstractmethod
    def pop(self, key: str) -> Any | None:
        """Lit et supprime atomiquement une clé."""


class InMemoryCache(Cache):
    """
    Cache en mémoire (utilisé pour dev/tests).

    Les valeurs sont stockées sérialisées en JSON pour reproduire la sémantique
    de copie de Redis (une valeur lue n'est jamais partagée avec l'appelant).
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or SystemClock()
        self._vals: dict[str, str] = {}
        self._exp: dict[str, Any] = {}

    def _purge_if_expired(self, key: str) -> None:
        exp = self._exp.get(key)
        if exp is not None and exp <= self.clock.now():
            self._exp.pop(key, None)
            self._vals.pop(key, None)

    def get(self, key: str) -> Any | None:
        self._purge_if_expired(key)
        raw = self._vals.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._vals[key] = json.dumps(value)
        self._exp[key] = self.clock.now() + timedelta(seconds=int(ttl_seconds))

    def delete(self, key: str) -> None:
        self._vals.pop(key, None)
        self._exp.pop(key, None)

    def delete_by_pattern(self, pattern: str) -> int:
        keys = [k for k in self._vals if fnmatch.fnmatchcase(k, pattern)]
        for k in keys:
            self.delete(k)
        return len(keys)

    def pop(self, key: str) -> Any | None:
        value = self.get(key)
        self.delete(key)
        return value

    def keys(self) -> list[str]:
        """Clés vivantes (aide au diagnostic et aux tests)."""
        for k in list(self._vals):
            self._purge_if_expired(k)
        return sorted(self._vals)


class RedisCache(Cache):
    """Cache adossé à Redis (valeurs JSON, expiration native `EX`)."""

    def __init__(self, url: str | None = None, client: redis.Redis | None = None) -> None:
        """Crée un client Redis à partir de l'URL fournie (ou utilise `client`)."""
        if client is None:
            if not url:
                raise ValueError("RedisCache requires a url or a client")
            client = redis.Redis.from_url(url, decode_responses=True)
        self.client = client

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except RedisError as err:
            raise UpstreamUnavailable("cache") from err

    def get(self, key: str) -> Any | None:
        try:
            raw = self.client.get(key)
        except RedisError as err:
            log.error("cache get failed", extra={"key": key, "error": type(err).__name__})
            raise UpstreamUnavailable("cache") from err
        return json.loads(raw) if raw else None

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            self.client.set(key, json.dumps(value), ex=int(ttl_seconds))
        except RedisError as err:
            log.error("cache set failed", extra={"key": key, "error": type(err).__name__})
            raise UpstreamUnavailable("cache") from err

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except RedisError as err:
            raise UpstreamUnavailable("cache") from err

    def delete_by_pattern(self, pattern: str) -> int:
        try:
            keys = list(self.client.scan_iter(match=pattern, count=500))
            if not keys:
                return 0
            return int(self.client.delete(*keys))
        except RedisError as err:
            log.error("cache pattern purge failed", extra={"pattern": pattern})
            raise UpstreamUnavailable("cache") from err

    def pop(self, key: str) -> Any | None:
        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.get(key)
            pipe.delete(key)
            raw, _ = pipe.execute()
        except RedisError as err:
            raise UpstreamUnavailable("cache") from err
        return json.loads(raw) if raw else None
