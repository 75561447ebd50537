"""Service de vote commit-reveal.

Flux:
- commit: calcul de l'engagement, stockage du matériel secret (7 jours).
- reveal: résolution locale du commit, vérification de l'engagement,
  soumission au ledger, puis seulement en cas de succès consommation du
  commit et enregistrement du vote sur le contenu.

Les deux magasins (ledger et store local) sont indépendants: la suppression
locale n'a lieu qu'après l'acquittement du ledger, de sorte qu'un échec de
soumission laisse l'enregistrement intact pour un nouvel essai.
"""

from __future__ import annotations

import structlog

from crowdvote.core.clock import Clock, SystemClock
from crowdvote.core.metrics import DEGRADED_READS, VOTE_COMMITS, VOTE_REVEALS
from crowdvote.domain.commitment import (
    derive_commitment,
    generate_salt,
    normalize_address,
    parse_vote,
    verify_commitment,
)
from crowdvote.domain.entities import (
    CommitReceipt,
    CommitRecord,
    RevealReceipt,
    Signer,
    VoteChoice,
)
from crowdvote.domain.errors import (
    CommitmentMismatchError,
    LedgerRejected,
    UpstreamUnavailable,
)
from crowdvote.domain.invalidation import ContentCacheInvalidator
from crowdvote.infra.commit_store import CommitStore
from crowdvote.infra.ledger.base import Ledger
from crowdvote.infra.repo.content_repo import SqlContentRepository


class VotingService:
    """Coordinateur commit/reveal."""

    def __init__(
        self,
        commits: CommitStore,
        ledger: Ledger,
        repo: SqlContentRepository,
        invalidator: ContentCacheInvalidator,
        clock: Clock | None = None,
    ) -> None:
        self.commits = commits
        self.ledger = ledger
        self.repo = repo
        self.invalidator = invalidator
        self.clock = clock or SystemClock()
        self._log = structlog.get_logger(__name__).bind(component="voting_service")

    def commit_vote(
        self,
        content_id: int,
        vote: int,
        confidence: int,
        token_type: int,
        voter_address: str,
        transaction_hash: str | None = None,
        salt: str | None = None,
    ) -> CommitReceipt:
        """Enregistre le matériel de commit et renvoie l'engagement.

        Sans sel fourni, un sel imprévisible est généré; il est renvoyé à
        l'appelant, qui doit en garder une copie. Un nouveau commit sur le même
        couple (contenu, votant) remplace le précédent.
        """
        voter = normalize_address(voter_address)
        salt = salt or generate_salt()
        commit_hash = derive_commitment(vote, confidence, salt, voter, token_type)
        record = CommitRecord(
            vote=parse_vote(vote),
            confidence=confidence,
            salt=salt,
            transaction_hash=transaction_hash,
            token_type=token_type,
            commit_hash=commit_hash,
            committed_at=self.clock.now(),
        )
        self.commits.put(content_id, voter, record)
        VOTE_COMMITS.inc()
        self._log.info("vote_committed", content_id=content_id, voter=voter)
        return CommitReceipt(
            content_id=content_id,
            commit_hash=commit_hash,
            salt=salt,
            transaction_hash=transaction_hash,
        )

    def get_saved_commit(self, content_id: int, voter_address: str) -> CommitRecord | None:
        """Lecture non destructive du commit d'un votant (réservée à son propriétaire)."""
        return self.commits.peek(content_id, voter_address)

    def reveal_vote(
        self,
        content_id: int,
        signer: Signer,
        vote: int | None = None,
        confidence: int | None = None,
        salt: str | None = None,
    ) -> RevealReceipt | None:
        """Révèle un vote engagé.

        Retourne None si aucun commit n'est résoluble localement (jamais
        commité, expiré ou déjà révélé): ce n'est ni un succès ni un refus.
        Le matériel non fourni est repris de l'enregistrement stocké.

        Lève `CommitmentMismatchError` si le tuple fourni ne reproduit pas
        l'engagement enregistré, `LedgerRejected` / `UpstreamUnavailable` si
        la soumission échoue (l'enregistrement local est alors conservé).
        """
        voter = normalize_address(signer.address)
        record = self.commits.peek(content_id, voter)
        if record is None:
            VOTE_REVEALS.labels(result="nothing_to_reveal").inc()
            self._log.info("reveal_without_commit", content_id=content_id, voter=voter)
            return None

        vote = record.vote if vote is None else parse_vote(vote)
        confidence = record.confidence if confidence is None else confidence
        salt = record.salt if salt is None else salt
        if record.commit_hash and not verify_commitment(
            record.commit_hash, vote, confidence, salt, voter, record.token_type
        ):
            VOTE_REVEALS.labels(result="mismatch").inc()
            raise CommitmentMismatchError(
                "Revealed vote does not match the stored commitment",
                details={"content_id": content_id},
            )

        try:
            receipt = self.ledger.reveal_vote(content_id, vote, confidence, salt, signer)
        except LedgerRejected:
            VOTE_REVEALS.labels(result="rejected").inc()
            raise
        except UpstreamUnavailable:
            VOTE_REVEALS.labels(result="upstream_error").inc()
            raise

        # Acquitté par le ledger: consommation unique du secret local
        if self.commits.take(content_id, voter) is None:
            self._log.info("commit_already_consumed", content_id=content_id, voter=voter)
        VOTE_REVEALS.labels(result="revealed").inc()

        recorded = self._record_vote(content_id, voter, vote, confidence, receipt.transaction_hash)
        return RevealReceipt(
            content_id=content_id,
            voter=voter,
            transaction_hash=receipt.transaction_hash,
            vote_recorded=recorded,
        )

    def _record_vote(
        self,
        content_id: int,
        voter: str,
        vote: VoteChoice,
        confidence: int,
        transaction_hash: str,
    ) -> bool:
        # Le ledger fait foi: un échec ici dégrade les compteurs locaux sans
        # invalider la révélation déjà acquittée.
        try:
            updated = self.repo.record_vote(content_id, voter, vote, confidence, transaction_hash)
        except UpstreamUnavailable:
            DEGRADED_READS.labels(field="vote_counters").inc()
            self._log.warning("vote_record_failed", content_id=content_id)
            return False
        if updated is None:
            self._log.warning("vote_for_unknown_content", content_id=content_id)
            return False
        self.invalidator.after_write(content_id)
        return True
