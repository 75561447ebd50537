"""
Tests pour la dérivation de l'engagement de vote.

Déterminisme, sensibilité à chaque champ, normalisation de l'adresse et rejet des entrées non
canoniques avant hachage.
"""

from __future__ import annotations

import pytest

from crowdvote.domain.commitment import (
    derive_commitment,
    encode_commitment_payload,
    generate_salt,
    normalize_address,
    verify_commitment,
)
from crowdvote.domain.errors import ValidationError

ADDR = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
OTHER = "0x1111111111111111111111111111111111111111"


def test_commitment_is_deterministic() -> None:
    """Mêmes entrées, même engagement (format 0x + 64 hex)."""
    a = derive_commitment(1, 80, "pepper", ADDR, 0)
    b = derive_commitment(1, 80, "pepper", ADDR, 0)
    assert a == b
    assert a.startswith("0x") and len(a) == 66


@pytest.mark.parametrize(
    "changed",
    [
        (0, 80, "pepper", ADDR, 0),
        (1, 81, "pepper", ADDR, 0),
        (1, 80, "pepper2", ADDR, 0),
        (1, 80, "pepper", OTHER, 0),
        (1, 80, "pepper", ADDR, 1),
    ],
)
def test_commitment_changes_with_any_field(changed) -> None:
    """Modifier un seul champ change l'engagement."""
    base = derive_commitment(1, 80, "pepper", ADDR, 0)
    assert derive_commitment(*changed) != base


def test_address_case_does_not_change_commitment() -> None:
    assert derive_commitment(1, 50, "s", ADDR) == derive_commitment(1, 50, "s", ADDR.lower())


def test_salt_length_prefix_removes_ambiguity() -> None:
    """Le sel est préfixé par sa longueur: pas de collision par concaténation."""
    p1 = encode_commitment_payload(1, 10, "ab", ADDR, 0)
    p2 = encode_commitment_payload(1, 10, "abc", ADDR, 0)
    assert p1 != p2
    assert len(p2) - len(p1) == 1
    assert p1[2:6] == (2).to_bytes(4, "big")


@pytest.mark.parametrize(
    "args",
    [
        (2, 50, "s", ADDR, 0),
        (1, 0, "s", ADDR, 0),
        (1, 101, "s", ADDR, 0),
        (1, 50, "", ADDR, 0),
        (1, 50, "s", "0x123", 0),
        (1, 50, "s", ADDR, 256),
        (1, 50, "s", ADDR, -1),
    ],
)
def test_non_canonical_inputs_are_rejected(args) -> None:
    with pytest.raises(ValidationError):
        derive_commitment(*args)


def test_verify_commitment_accepts_matching_tuple_only() -> None:
    commitment = derive_commitment(0, 42, "salt", ADDR, 3)
    assert verify_commitment(commitment, 0, 42, "salt", ADDR, 3) is True
    assert verify_commitment(commitment.upper().replace("0X", "0x"), 0, 42, "salt", ADDR, 3)
    assert verify_commitment(commitment, 1, 42, "salt", ADDR, 3) is False


def test_normalize_address_lowercases_and_validates() -> None:
    assert normalize_address(ADDR) == ADDR.lower()
    with pytest.raises(ValidationError) as exc:
        normalize_address("not-an-address")
    assert exc.value.message == "Malformed voter address"


def test_generated_salts_are_unpredictable() -> None:
    salts = {generate_salt() for _ in range(20)}
    assert len(salts) == 20
    assert all(len(s) == 64 for s in salts)
