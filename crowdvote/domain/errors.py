"""Erreurs métier du système de vote commit-reveal.

L'absence (contenu inconnu, commit introuvable) n'est pas une erreur: les
services renvoient explicitement `None` dans ce cas.
"""

from __future__ import annotations

from typing import Any


class CrowdVoteError(Exception):
    """Base de toutes les erreurs du domaine."""


class ValidationError(CrowdVoteError):
    """Entrée rejetée avant tout appel externe (corrigible par l'appelant)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class CommitmentMismatchError(ValidationError):
    """Le matériel révélé ne reproduit pas l'engagement enregistré au commit."""


class UpstreamUnavailable(CrowdVoteError):
    """Un collaborateur externe (cache, base, blob store, ledger) a échoué.

    Le message reste générique: aucun détail de stockage interne n'est exposé.
    """

    def __init__(self, component: str, message: str | None = None) -> None:
        super().__init__(message or f"{component} unavailable")
        self.component = component


class LedgerRejected(UpstreamUnavailable):
    """Le ledger a refusé la transaction (ex: engagement non reproduit)."""

    def __init__(self, reason: str) -> None:
        super().__init__("ledger", f"ledger rejected transaction: {reason}")
        self.reason = reason
