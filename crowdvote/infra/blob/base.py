"""Interface de base pour le stockage de blobs/métadonnées adressés par contenu."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BlobStore(ABC):
    """Interface abstraite pour le stockage de blobs (IPFS ou équivalent)."""

    @abstractmethod
    def put_bytes(self, data: bytes, filename: str) -> str:
        """Stocke un fichier et retourne son adresse de contenu."""
        raise NotImplementedError

    @abstractmethod
    def put_json(self, obj: dict[str, Any]) -> str:
        """Stocke un objet JSON et retourne son adresse de contenu."""
        raise NotImplementedError

    @abstractmethod
    def pin(self, address: str) -> bool:
        """Épingle une adresse pour garantir sa persistance."""
        raise NotImplementedError

    @abstractmethod
    def get_json(self, address: str) -> dict[str, Any]:
        """Charge un objet JSON; lève `UpstreamUnavailable` en cas d'échec."""
        raise NotImplementedError
