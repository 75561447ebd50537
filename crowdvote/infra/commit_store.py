"""Store temporaire du matériel secret de commit (clé: contenu + votant).

- `put` écrase tout enregistrement précédent (le dernier commit gagne; l'ancien
  sel devient irrécupérable).
- `peek` lit sans consommer, `take` lit et supprime atomiquement (one-shot).
- Les entrées expirent seules après la fenêtre de rétention (7 jours par
  défaut); une entrée expirée est traitée comme absente.
"""

from __future__ import annotations

from crowdvote.domain.cache_keys import commit_cache_key
from crowdvote.domain.commitment import normalize_address
from crowdvote.domain.entities import CommitRecord
from crowdvote.infra.cache import Cache

DEFAULT_COMMIT_TTL_SECONDS = 7 * 24 * 3600


class CommitStore:
    """Enregistrements `CommitRecord` adossés au cache injecté."""

    def __init__(self, cache: Cache, ttl_seconds: int = DEFAULT_COMMIT_TTL_SECONDS) -> None:
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    def _key(self, content_id: int, voter_address: str) -> str:
        return commit_cache_key(content_id, normalize_address(voter_address))

    def put(
        self,
        content_id: int,
        voter_address: str,
        record: CommitRecord,
        ttl_seconds: int | None = None,
    ) -> None:
        """Enregistre (ou remplace) le matériel de commit pour ce couple."""
        self.cache.set(
            self._key(content_id, voter_address),
            record.model_dump(mode="json"),
            int(ttl_seconds or self.ttl_seconds),
        )

    def peek(self, content_id: int, voter_address: str) -> CommitRecord | None:
        raw = self.cache.get(self._key(content_id, voter_address))
        return CommitRecord.model_validate(raw) if raw else None

    def take(self, content_id: int, voter_address: str) -> CommitRecord | None:
        """Consomme l'enregistrement: un second appel renvoie None."""
        raw = self.cache.pop(self._key(content_id, voter_address))
        return CommitRecord.model_validate(raw) if raw else None
