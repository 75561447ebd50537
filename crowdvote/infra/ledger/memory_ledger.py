"""Ledger déterministe en mémoire pour les tests et le développement.

Ce module simule le contrat de vote: attribution séquentielle des
identifiants, enregistrement des engagements on-chain, vérification de
l'engagement lors de la révélation et finalisation manuelle.
"""

from __future__ import annotations

import hashlib
import itertools
from decimal import Decimal

from crowdvote.domain.commitment import derive_commitment, normalize_address
from crowdvote.domain.entities import Signer, VoteChoice
from crowdvote.domain.errors import LedgerRejected
from crowdvote.infra.ledger.base import Ledger, LedgerReceipt, LedgerResults, SubmissionResult


class InMemoryLedger(Ledger):
    """Ledger factice: résultats prévisibles, sans réseau."""

    def __init__(self, first_content_id: int = 1) -> None:
        self._ids = itertools.count(first_content_id)
        self._nonce = itertools.count(1)
        self.contents: dict[int, dict] = {}
        # (content_id, voter) -> (commit_hash, token_type)
        self.commitments: dict[tuple[int, str], tuple[str, int]] = {}
        self.revealed: dict[tuple[int, str], tuple[VoteChoice, int]] = {}

    def _tx_hash(self, *parts: object) -> str:
        raw = ":".join(str(p) for p in (*parts, next(self._nonce)))
        return "0x" + hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def submit_content(
        self, metadata_ref: str, duration_seconds: int, signer: Signer
    ) -> SubmissionResult:
        content_id = next(self._ids)
        self.contents[content_id] = {
            "metadata_ref": metadata_ref,
            "duration_seconds": duration_seconds,
            "creator": normalize_address(signer.address),
            "finalized": False,
            "total_usd_value": Decimal("0"),
        }
        return SubmissionResult(content_id, self._tx_hash("submit", content_id))

    def record_commitment(
        self, content_id: int, voter_address: str, commit_hash: str, token_type: int = 0
    ) -> str:
        """Simule le commit on-chain effectué par le votant lui-même."""
        if content_id not in self.contents:
            raise LedgerRejected("unknown content")
        key = (content_id, normalize_address(voter_address))
        self.commitments[key] = (commit_hash, token_type)
        return self._tx_hash("commit", content_id, key[1])

    def reveal_vote(
        self,
        content_id: int,
        vote: VoteChoice,
        confidence: int,
        salt: str,
        signer: Signer,
    ) -> LedgerReceipt:
        voter = normalize_address(signer.address)
        key = (content_id, voter)
        if key in self.revealed:
            raise LedgerRejected("already revealed")
        committed = self.commitments.get(key)
        if committed is None:
            raise LedgerRejected("no commitment")
        commit_hash, token_type = committed
        if derive_commitment(vote, confidence, salt, voter, token_type) != commit_hash:
            raise LedgerRejected("commitment mismatch")
        self.revealed[key] = (VoteChoice(vote), confidence)
        return LedgerReceipt(self._tx_hash("reveal", content_id, voter))

    def finalize(self, content_id: int, total_usd_value: Decimal = Decimal("0")) -> None:
        """Finalise un contenu (action externe au backend)."""
        self.contents[content_id]["finalized"] = True
        self.contents[content_id]["total_usd_value"] = total_usd_value

    def get_results(self, content_id: int) -> LedgerResults:
        if content_id not in self.contents:
            raise LedgerRejected("unknown content")
        votes = [v for (cid, _), (v, _) in self.revealed.items() if cid == content_id]
        content = self.contents[content_id]
        return LedgerResults(
            content_id=content_id,
            finalized=bool(content["finalized"]),
            upvotes=sum(1 for v in votes if v == VoteChoice.UPVOTE),
            downvotes=sum(1 for v in votes if v == VoteChoice.DOWNVOTE),
            total_usd_value=content["total_usd_value"],
        )
