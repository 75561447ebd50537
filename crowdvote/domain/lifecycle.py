"""Machine à états du cycle de vie d'un contenu soumis au vote.

Le statut n'est jamais stocké: il est recalculé à chaque lecture à partir de
l'heure courante et des drapeaux persistés. Les prédicats de requête sont
dérivés de la même table de transitions afin que le filtrage des listes et le
statut affiché ne divergent jamais.

Ordre d'évaluation:
- `is_finalized` → FINALIZED (terminal)
- `now >= voting_end_time` → EXPIRED (reste EXPIRED tant que non finalisé,
  que la synchronisation ait déjà posé `is_active=False` ou non)
- `not is_active` → INACTIVE (retiré avant la fin de la fenêtre)
- `now < voting_start_time` → PENDING
- sinon → LIVE
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from crowdvote.core.clock import as_utc
from crowdvote.domain.entities import ContentSnapshot
from crowdvote.domain.errors import ValidationError

MIN_VOTING_PERIOD_SECONDS = 60
MAX_VOTING_PERIOD_SECONDS = 7 * 24 * 3600


class ContentStatus(str, Enum):
    """Statut dérivé d'un contenu."""

    PENDING = "pending"
    LIVE = "live"
    EXPIRED = "expired"
    FINALIZED = "finalized"
    INACTIVE = "inactive"


def derive_status(item: ContentSnapshot, now: datetime) -> ContentStatus:
    """Calcule le statut courant d'un contenu (fonction pure)."""
    now = as_utc(now)
    if item.is_finalized:
        return ContentStatus.FINALIZED
    if now >= as_utc(item.voting_end_time):
        return ContentStatus.EXPIRED
    if not item.is_active:
        return ContentStatus.INACTIVE
    if now < as_utc(item.voting_start_time):
        return ContentStatus.PENDING
    return ContentStatus.LIVE


def time_remaining(item: ContentSnapshot, now: datetime) -> int:
    """Secondes restantes avant la fin du vote (0 hors PENDING/LIVE)."""
    status = derive_status(item, now)
    if status not in (ContentStatus.PENDING, ContentStatus.LIVE):
        return 0
    delta = as_utc(item.voting_end_time) - as_utc(now)
    return max(0, int(delta.total_seconds()))


def needs_deactivation(item: ContentSnapshot, now: datetime) -> bool:
    """Vrai si la synchronisation doit persister `is_active=False`."""
    if not item.is_active:
        return False
    return derive_status(item, now) in (ContentStatus.EXPIRED, ContentStatus.FINALIZED)


@dataclass(frozen=True)
class StatusPredicate:
    """Prédicat neutre vis-à-vis du stockage sur les champs du cycle de vie.

    `None` signifie "pas de contrainte". Les bornes temporelles sont
    exprimées par rapport à `now`: `start_after` ⇔ `voting_start_time > now`,
    `start_not_after` ⇔ `voting_start_time <= now`, idem pour la fin.
    """

    is_active: bool | None = None
    is_finalized: bool | None = None
    start_after: datetime | None = None
    start_not_after: datetime | None = None
    end_after: datetime | None = None
    end_not_after: datetime | None = None

    def matches(self, item: ContentSnapshot) -> bool:
        start = as_utc(item.voting_start_time)
        end = as_utc(item.voting_end_time)
        checks = [
            self.is_active is None or item.is_active == self.is_active,
            self.is_finalized is None or item.is_finalized == self.is_finalized,
            self.start_after is None or start > self.start_after,
            self.start_not_after is None or start <= self.start_not_after,
            self.end_after is None or end > self.end_after,
            self.end_not_after is None or end <= self.end_not_after,
        ]
        return all(checks)


def status_predicate(status: ContentStatus, now: datetime) -> StatusPredicate:
    """Traduit un statut en prédicat concret pour l'instant `now`."""
    now = as_utc(now)
    if status is ContentStatus.FINALIZED:
        return StatusPredicate(is_finalized=True)
    if status is ContentStatus.EXPIRED:
        return StatusPredicate(is_finalized=False, end_not_after=now)
    if status is ContentStatus.INACTIVE:
        return StatusPredicate(is_active=False, is_finalized=False, end_after=now)
    if status is ContentStatus.PENDING:
        return StatusPredicate(
            is_active=True, is_finalized=False, start_after=now, end_after=now
        )
    return StatusPredicate(
        is_active=True, is_finalized=False, start_not_after=now, end_after=now
    )


def validate_voting_window(
    start: datetime,
    end: datetime,
    min_seconds: int = MIN_VOTING_PERIOD_SECONDS,
    max_seconds: int = MAX_VOTING_PERIOD_SECONDS,
) -> int:
    """Valide la durée de vote et renvoie sa valeur en secondes entières.

    Les bornes sont comparées à la durée exacte (fractions de seconde
    comprises); la valeur renvoyée est tronquée à la seconde, et reste donc
    dans les bornes. Lève `ValidationError` en citant la durée calculée et
    la borne violée.
    """
    window = as_utc(end) - as_utc(start)
    seconds = window.total_seconds()
    duration = int(seconds) if seconds.is_integer() else round(seconds, 3)
    details = {"duration_seconds": duration, "min_seconds": min_seconds, "max_seconds": max_seconds}
    if window < timedelta(seconds=min_seconds):
        raise ValidationError(
            f"Voting period must be at least {min_seconds} seconds. "
            f"Current duration: {duration} seconds.",
            details=details,
        )
    if window > timedelta(seconds=max_seconds):
        raise ValidationError(
            f"Voting period must be at most {max_seconds} seconds. "
            f"Current duration: {duration} seconds.",
            details=details,
        )
    return int(seconds)
