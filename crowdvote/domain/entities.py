"""
Entités du domaine métier.

Ce module définit les modèles de données principaux du vote commit-reveal:
contenus soumis au vote, matériel secret de commit et reçus renvoyés aux appelants.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, Field


class VoteChoice(IntEnum):
    """Choix de vote (encodé sur un octet dans l'engagement)."""

    DOWNVOTE = 0
    UPVOTE = 1


class Signer(BaseModel):
    """Identité de l'appelant vis-à-vis du ledger (adresse de compte)."""

    address: str


class ContentCreate(BaseModel):
    """Données de soumission d'un contenu.

    Les bornes de la fenêtre de vote sont optionnelles: à défaut, le vote
    démarre immédiatement pour la durée par défaut configurée.
    """

    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    content_type: str = "text"
    tags: list[str] = Field(default_factory=list)
    category: str = "general"
    language: str = "en"
    voting_start_time: datetime | None = None
    voting_end_time: datetime | None = None


@dataclass(frozen=True)
class FileUpload:
    """Fichier joint à une soumission."""

    name: str
    data: bytes


@dataclass(frozen=True)
class ContentSnapshot:
    """
    Photographie immuable d'un contenu tel que persisté.

    Attributs
    - content_id: identifiant attribué par le ledger (identité externe).
    - ipfs_hash: adresse des métadonnées hors système.
    - voting_start_time / voting_end_time: fenêtre de vote (UTC).
    - is_active / is_finalized: drapeaux stockés; le statut est dérivé.
    - upvotes / downvotes / vote_count: agrégats de votes révélés.
    - total_usd_value: valeur monétaire agrégée.
    """

    content_id: int
    ipfs_hash: str
    title: str
    creator: str
    submission_time: datetime
    voting_start_time: datetime
    voting_end_time: datetime
    description: str = ""
    content_type: str = "text"
    tags: tuple[str, ...] = ()
    is_active: bool = True
    is_finalized: bool = False
    upvotes: int = 0
    downvotes: int = 0
    vote_count: int = 0
    total_usd_value: Decimal = Decimal("0")
    transaction_hash: str | None = None
    content_url: str | None = None
    thumbnail_url: str | None = None


class CommitRecord(BaseModel):
    """Matériel secret conservé entre le commit et le reveal."""

    vote: VoteChoice
    confidence: int = Field(ge=1, le=100)
    salt: str
    transaction_hash: str | None = None
    token_type: int = 0
    commit_hash: str | None = None
    committed_at: datetime | None = None


class CommitReceipt(BaseModel):
    """Réponse au commit: l'appelant doit conserver une copie du sel."""

    content_id: int
    commit_hash: str
    salt: str
    transaction_hash: str | None = None


class RevealReceipt(BaseModel):
    """Reçu de révélation renvoyé par le ledger."""

    content_id: int
    voter: str
    transaction_hash: str
    vote_recorded: bool = True


@dataclass
class ContentPage:
    """Page de résultats avec informations de pagination."""

    results: list[dict[str, Any]] = field(default_factory=list)
    pagination: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"results": self.results, "pagination": self.pagination}
