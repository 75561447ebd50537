"""Dérivation de l'engagement de vote (commit hash).

L'engagement est un SHA-256 sur un encodage canonique à largeur fixe:

    vote (1 octet) | confidence (1 octet) | len(salt) (4 octets BE) | salt (UTF-8)
    | adresse (20 octets) | token_type (1 octet)

La longueur préfixée du sel supprime toute ambiguïté de concaténation; les
entrées non canoniques sont rejetées avant hachage.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import secrets

from crowdvote.domain.entities import VoteChoice
from crowdvote.domain.errors import ValidationError

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
MIN_CONFIDENCE = 1
MAX_CONFIDENCE = 100
MAX_TOKEN_TYPE = 255
SALT_BYTES = 32


def normalize_address(address: str) -> str:
    """Valide une adresse `0x` + 40 hex et la renvoie en minuscules."""
    if not isinstance(address, str) or not ADDRESS_RE.match(address.strip()):
        raise ValidationError("Malformed voter address", details={"address": address})
    return address.strip().lower()


def generate_salt() -> str:
    """Sel imprévisible (CSPRNG), en hexadécimal."""
    return secrets.token_hex(SALT_BYTES)


def parse_vote(vote: int) -> VoteChoice:
    """Convertit un choix brut en `VoteChoice` (ValidationError si inconnu)."""
    try:
        return VoteChoice(int(vote))
    except (TypeError, ValueError) as err:
        raise ValidationError("Unknown vote choice", details={"vote": vote}) from err


def _check_confidence(confidence: int) -> int:
    if isinstance(confidence, bool) or not isinstance(confidence, int):
        raise ValidationError("Confidence must be an integer", details={"confidence": confidence})
    if not MIN_CONFIDENCE <= confidence <= MAX_CONFIDENCE:
        raise ValidationError(
            f"Confidence must be between {MIN_CONFIDENCE} and {MAX_CONFIDENCE}, got {confidence}",
            details={"confidence": confidence},
        )
    return confidence


def _check_token_type(token_type: int) -> int:
    if isinstance(token_type, bool) or not isinstance(token_type, int):
        raise ValidationError("Token type must be an integer", details={"token_type": token_type})
    if not 0 <= token_type <= MAX_TOKEN_TYPE:
        raise ValidationError(
            f"Token type must be between 0 and {MAX_TOKEN_TYPE}, got {token_type}",
            details={"token_type": token_type},
        )
    return token_type


def encode_commitment_payload(
    vote: int, confidence: int, salt: str, voter_address: str, token_type: int
) -> bytes:
    """Encode les cinq champs sous forme canonique (voir docstring du module)."""
    choice = parse_vote(vote)
    conf = _check_confidence(confidence)
    ttype = _check_token_type(token_type)
    if not isinstance(salt, str) or not salt:
        raise ValidationError("Salt must be a non-empty string")
    address = normalize_address(voter_address)
    salt_bytes = salt.encode("utf-8")
    return b"".join(
        [
            int(choice).to_bytes(1, "big"),
            conf.to_bytes(1, "big"),
            len(salt_bytes).to_bytes(4, "big"),
            salt_bytes,
            bytes.fromhex(address[2:]),
            ttype.to_bytes(1, "big"),
        ]
    )


def derive_commitment(
    vote: int, confidence: int, salt: str, voter_address: str, token_type: int = 0
) -> str:
    """Calcule l'engagement `0x` + 64 hex (fonction pure et déterministe)."""
    payload = encode_commitment_payload(vote, confidence, salt, voter_address, token_type)
    return "0x" + hashlib.sha256(payload).hexdigest()


def verify_commitment(
    commitment: str,
    vote: int,
    confidence: int,
    salt: str,
    voter_address: str,
    token_type: int = 0,
) -> bool:
    """Vérifie (comparaison à temps constant) qu'un tuple reproduit l'engagement."""
    expected = derive_commitment(vote, confidence, salt, voter_address, token_type)
    return hmac.compare_digest(expected, commitment.lower())
