"""Interface du ledger qui attribue les identités de contenu et finalise les votes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from crowdvote.domain.entities import Signer, VoteChoice


@dataclass(frozen=True)
class SubmissionResult:
    """Identité attribuée par le ledger (autorité) et transaction associée."""

    content_id: int
    transaction_hash: str


@dataclass(frozen=True)
class LedgerReceipt:
    """Reçu d'une transaction acceptée."""

    transaction_hash: str
    status: str = "success"


@dataclass(frozen=True)
class LedgerResults:
    """Résultats agrégés d'un contenu côté ledger."""

    content_id: int
    finalized: bool
    upvotes: int = 0
    downvotes: int = 0
    total_usd_value: Decimal = Decimal("0")

    def to_dict(self) -> dict:
        return {
            "content_id": self.content_id,
            "finalized": self.finalized,
            "upvotes": self.upvotes,
            "downvotes": self.downvotes,
            "total_usd_value": str(self.total_usd_value),
        }


class Ledger(ABC):
    """Interface abstraite du ledger.

    Les implémentations lèvent `LedgerRejected` quand la transaction est
    refusée et `UpstreamUnavailable` pour toute autre défaillance.
    """

    @abstractmethod
    def submit_content(
        self, metadata_ref: str, duration_seconds: int, signer: Signer
    ) -> SubmissionResult:
        """Enregistre un contenu et renvoie l'identifiant attribué."""
        raise NotImplementedError

    @abstractmethod
    def reveal_vote(
        self,
        content_id: int,
        vote: VoteChoice,
        confidence: int,
        salt: str,
        signer: Signer,
    ) -> LedgerReceipt:
        """Révèle un vote; le ledger vérifie l'engagement enregistré au commit."""
        raise NotImplementedError

    @abstractmethod
    def get_results(self, content_id: int) -> LedgerResults:
        raise NotImplementedError
