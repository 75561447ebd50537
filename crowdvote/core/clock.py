"""Horloges injectables (temps réel et figé pour les tests).

Tous les calculs dépendant du temps (statut de cycle de vie, TTL du cache)
passent par une horloge injectée plutôt que par `datetime.now()` direct.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Source de temps courante (UTC, timezone-aware)."""

    def now(self) -> datetime: ...


class SystemClock:
    """Horloge murale UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FrozenClock:
    """Horloge contrôlable: ne bouge que via `advance()` ou `set()`."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = as_utc(start) if start else datetime.now(UTC)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> datetime:
        """Avance l'horloge de `seconds` secondes et retourne la nouvelle date."""
        self._now = self._now + timedelta(seconds=seconds)
        return self._now

    def set(self, when: datetime) -> None:
        self._now = as_utc(when)


def as_utc(value: datetime) -> datetime:
    """Normalise une date en UTC aware (les dates naïves sont supposées UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
