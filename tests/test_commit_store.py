"""
Tests pour le store des secrets de commit.

Normalisation de l'adresse, écrasement (dernier commit gagnant), expiration après la fenêtre de
rétention et consommation unique.
"""

from __future__ import annotations

from datetime import UTC, datetime

from crowdvote.domain.entities import CommitRecord, VoteChoice
from crowdvote.infra.commit_store import DEFAULT_COMMIT_TTL_SECONDS, CommitStore

ADDR = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"


def _record(vote: int = 1, salt: str = "s1") -> CommitRecord:
    return CommitRecord(
        vote=vote,
        confidence=70,
        salt=salt,
        committed_at=datetime(2026, 1, 1, tzinfo=UTC),
    )


def test_lookup_is_case_insensitive(commit_store: CommitStore) -> None:
    commit_store.put(5, ADDR, _record())
    got = commit_store.peek(5, ADDR.lower())
    assert got is not None and got.vote is VoteChoice.UPVOTE and got.salt == "s1"
    assert commit_store.peek(5, ADDR.upper().replace("0X", "0x")) == got


def test_key_is_lowercase(commit_store: CommitStore, cache) -> None:
    commit_store.put(5, ADDR, _record())
    assert cache.keys() == [f"commit:5:{ADDR.lower()}"]


def test_last_commit_wins(commit_store: CommitStore) -> None:
    commit_store.put(5, ADDR, _record(vote=1, salt="old"))
    commit_store.put(5, ADDR, _record(vote=0, salt="new"))
    got = commit_store.peek(5, ADDR)
    assert got.vote is VoteChoice.DOWNVOTE and got.salt == "new"


def test_records_expire_after_retention(commit_store: CommitStore, clock) -> None:
    commit_store.put(5, ADDR, _record())
    clock.advance(DEFAULT_COMMIT_TTL_SECONDS - 1)
    assert commit_store.peek(5, ADDR) is not None
    clock.advance(2)
    assert commit_store.peek(5, ADDR) is None
    assert commit_store.take(5, ADDR) is None


def test_take_is_one_shot(commit_store: CommitStore) -> None:
    commit_store.put(5, ADDR, _record())
    assert commit_store.take(5, ADDR) is not None
    assert commit_store.take(5, ADDR) is None
    assert commit_store.peek(5, ADDR) is None


def test_records_are_scoped_per_content(commit_store: CommitStore) -> None:
    commit_store.put(5, ADDR, _record())
    assert commit_store.peek(6, ADDR) is None
