"""
Tests pour le coordinateur commit-reveal.

Le secret local n'est consommé qu'après acquittement du ledger: un échec laisse l'enregistrement
intact pour un nouvel essai, un succès le rend introuvable (une seconde révélation ne trouve rien).
"""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from crowdvote.domain.commitment import derive_commitment
from crowdvote.domain.entities import Signer, VoteChoice
from crowdvote.domain.errors import (
    CommitmentMismatchError,
    LedgerRejected,
    UpstreamUnavailable,
    ValidationError,
)
from crowdvote.domain.voting_service import VotingService

VOTER = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"


@pytest.fixture
def content_id(make_content) -> int:
    return make_content(start=0, end=3600).content_id


def _commit(voting_service, ledger, content_id: int, vote: int = 1, confidence: int = 80, **kw):
    receipt = voting_service.commit_vote(content_id, vote, confidence, 0, VOTER, **kw)
    ledger.record_commitment(content_id, VOTER, receipt.commit_hash, 0)
    return receipt


def test_commit_returns_salt_and_commitment(voting_service, content_id) -> None:
    receipt = voting_service.commit_vote(content_id, 1, 80, 0, VOTER, transaction_hash="0xt")
    assert len(receipt.salt) == 64
    assert receipt.commit_hash == derive_commitment(1, 80, receipt.salt, VOTER, 0)
    saved = voting_service.get_saved_commit(content_id, VOTER.lower())
    assert saved.vote is VoteChoice.UPVOTE
    assert saved.salt == receipt.salt
    assert saved.transaction_hash == "0xt"


def test_commit_uses_caller_salt(voting_service, content_id) -> None:
    receipt = voting_service.commit_vote(content_id, 0, 10, 2, VOTER, salt="mine")
    assert receipt.salt == "mine"
    assert receipt.commit_hash == derive_commitment(0, 10, "mine", VOTER, 2)


@pytest.mark.parametrize(
    "args",
    [(5, 80, 0, VOTER), (1, 0, 0, VOTER), (1, 80, 0, "0xnope")],
)
def test_commit_rejects_invalid_input(voting_service, content_id, args) -> None:
    with pytest.raises(ValidationError):
        voting_service.commit_vote(content_id, *args)
    assert voting_service.get_saved_commit(content_id, VOTER) is None


def test_reveal_is_one_shot(voting_service, ledger, repo, content_id) -> None:
    receipt = _commit(voting_service, ledger, content_id)
    revealed = voting_service.reveal_vote(content_id, Signer(address=VOTER))
    assert revealed is not None
    assert revealed.voter == VOTER.lower()
    assert revealed.vote_recorded is True
    assert revealed.transaction_hash.startswith("0x")
    assert ledger.revealed[(content_id, VOTER.lower())] == (VoteChoice.UPVOTE, 80)
    assert voting_service.get_saved_commit(content_id, VOTER) is None
    assert voting_service.reveal_vote(content_id, Signer(address=VOTER)) is None

    item = repo.get(content_id)
    assert (item.upvotes, item.downvotes, item.vote_count) == (1, 0, 1)
    assert receipt.commit_hash


def test_reveal_with_different_address_case(voting_service, ledger, content_id) -> None:
    _commit(voting_service, ledger, content_id)
    signer = Signer(address=VOTER.lower())
    assert voting_service.reveal_vote(content_id, signer) is not None


def test_reveal_without_commit_returns_none(voting_service, content_id) -> None:
    assert voting_service.reveal_vote(content_id, Signer(address=VOTER)) is None


def test_reveal_after_retention_returns_none(voting_service, ledger, clock, content_id) -> None:
    _commit(voting_service, ledger, content_id)
    clock.advance(7 * 24 * 3600 + 1)
    assert voting_service.reveal_vote(content_id, Signer(address=VOTER)) is None


def test_last_commit_wins_on_reveal(voting_service, ledger, content_id) -> None:
    voting_service.commit_vote(content_id, 1, 80, 0, VOTER)
    _commit(voting_service, ledger, content_id, vote=0, confidence=20)
    voting_service.reveal_vote(content_id, Signer(address=VOTER))
    assert ledger.revealed[(content_id, VOTER.lower())] == (VoteChoice.DOWNVOTE, 20)


def test_mismatch_is_rejected_before_ledger(commit_store, repo, invalidator, clock, content_id):
    ledger = Mock()
    service = VotingService(commit_store, ledger, repo, invalidator, clock=clock)
    service.commit_vote(content_id, 1, 80, 0, VOTER, salt="s")
    with pytest.raises(CommitmentMismatchError):
        service.reveal_vote(content_id, Signer(address=VOTER), vote=0)
    ledger.reveal_vote.assert_not_called()
    assert service.get_saved_commit(content_id, VOTER) is not None


def test_explicit_matching_tuple_is_accepted(voting_service, ledger, content_id) -> None:
    _commit(voting_service, ledger, content_id, salt="s")
    revealed = voting_service.reveal_vote(
        content_id, Signer(address=VOTER), vote=1, confidence=80, salt="s"
    )
    assert revealed is not None


@pytest.mark.parametrize("error", [UpstreamUnavailable("ledger"), LedgerRejected("out of gas")])
def test_ledger_failure_keeps_record(commit_store, repo, invalidator, clock, content_id, error):
    """Après un échec du ledger, un nouvel essai retrouve le même matériel."""
    ledger = Mock()
    ledger.reveal_vote.side_effect = error
    service = VotingService(commit_store, ledger, repo, invalidator, clock=clock)
    receipt = service.commit_vote(content_id, 1, 80, 0, VOTER)
    with pytest.raises(UpstreamUnavailable):
        service.reveal_vote(content_id, Signer(address=VOTER))
    saved = service.get_saved_commit(content_id, VOTER)
    assert saved is not None and saved.salt == receipt.salt
    assert repo.get(content_id).vote_count == 0


def test_ledger_rejection_keeps_record(voting_service, content_id) -> None:
    """Sans commit on-chain, le ledger refuse; le secret local reste disponible."""
    voting_service.commit_vote(content_id, 1, 80, 0, VOTER)
    with pytest.raises(LedgerRejected) as exc:
        voting_service.reveal_vote(content_id, Signer(address=VOTER))
    assert exc.value.reason == "no commitment"
    assert voting_service.get_saved_commit(content_id, VOTER) is not None


def test_vote_record_failure_degrades(commit_store, ledger, invalidator, clock, content_id):
    repo = Mock()
    repo.record_vote.side_effect = UpstreamUnavailable("database")
    service = VotingService(commit_store, ledger, repo, invalidator, clock=clock)
    _commit(service, ledger, content_id)
    revealed = service.reveal_vote(content_id, Signer(address=VOTER))
    assert revealed.vote_recorded is False
    assert service.get_saved_commit(content_id, VOTER) is None


def test_reveal_invalidates_cached_reads(
    voting_service, ledger, content_service, cache, content_id
) -> None:
    before = content_service.get_content(content_id)
    assert before["upvotes"] == 0
    _commit(voting_service, ledger, content_id)
    voting_service.reveal_vote(content_id, Signer(address=VOTER))
    after = content_service.get_content(content_id)
    assert after["upvotes"] == 1
    assert after["vote_count"] == 1
