"""
Blob store en mémoire adressé par contenu.

Utilisé en développement et dans les tests: les adresses sont dérivées du
SHA-256 du contenu, ce qui rend les uploads idempotents et déterministes.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from crowdvote.domain.errors import UpstreamUnavailable
from crowdvote.infra.blob.base import BlobStore


class InMemoryBlobStore(BlobStore):
    """Blob store en mémoire avec suivi des épinglages."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}
        self.pinned: set[str] = set()

    @staticmethod
    def _address(data: bytes) -> str:
        return "bafy" + hashlib.sha256(data).hexdigest()[:52]

    def put_bytes(self, data: bytes, filename: str) -> str:
        address = self._address(data)
        self._blobs[address] = data
        return address

    def put_json(self, obj: dict[str, Any]) -> str:
        data = json.dumps(obj, sort_keys=True, separators=(",", ":")).encode("utf-8")
        return self.put_bytes(data, "metadata.json")

    def pin(self, address: str) -> bool:
        if address not in self._blobs:
            raise UpstreamUnavailable("blob_store", "cannot pin unknown address")
        self.pinned.add(address)
        return True

    def get_json(self, address: str) -> dict[str, Any]:
        raw = self._blobs.get(address)
        if raw is None:
            raise UpstreamUnavailable("blob_store")
        return json.loads(raw)
