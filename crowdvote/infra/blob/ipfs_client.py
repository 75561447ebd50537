# ============================================================
# Module : crowdvote/infra/blob/ipfs_client.py
# Objet  : Client HTTP du nœud IPFS (API Kubo `/api/v0`).
# Contexte : les erreurs réseau/HTTP sont traduites en UpstreamUnavailable,
#            sans exposer l'URL ni la réponse du nœud.
# ============================================================

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog

from crowdvote.domain.errors import UpstreamUnavailable
from crowdvote.infra.blob.base import BlobStore


class IpfsHttpBlobStore(BlobStore):
    """Blob store adossé à l'API HTTP d'un nœud IPFS."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._log = structlog.get_logger(__name__).bind(component="ipfs_blob_store")
        if client is None:
            timeout = httpx.Timeout(timeout_seconds)
            limits = httpx.Limits(max_keepalive_connections=10, max_connections=20)
            client = httpx.Client(timeout=timeout, limits=limits)
        self._client = client

    def _post(self, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}/api/v0/{path}"
        try:
            resp = self._client.post(url, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.HTTPError as err:
            self._log.warning("ipfs_call_failed", path=path, error=type(err).__name__)
            raise UpstreamUnavailable("blob_store") from err

    def _json(self, resp: httpx.Response, path: str) -> dict[str, Any]:
        try:
            payload = resp.json()
        except ValueError as err:
            raise UpstreamUnavailable("blob_store", "malformed IPFS response") from err
        if not isinstance(payload, dict):
            self._log.warning("ipfs_malformed_response", path=path)
            raise UpstreamUnavailable("blob_store", "malformed IPFS response")
        return payload

    def put_bytes(self, data: bytes, filename: str) -> str:
        resp = self._post("add", params={"pin": "false"}, files={"file": (filename, data)})
        address = self._json(resp, "add").get("Hash")
        if not isinstance(address, str) or not address:
            raise UpstreamUnavailable("blob_store", "malformed IPFS response")
        return address

    def put_json(self, obj: dict[str, Any]) -> str:
        data = json.dumps(obj, sort_keys=True).encode("utf-8")
        return self.put_bytes(data, "metadata.json")

    def pin(self, address: str) -> bool:
        resp = self._post("pin/add", params={"arg": address})
        pins = self._json(resp, "pin/add").get("Pins") or []
        return isinstance(pins, list) and address in pins

    def get_json(self, address: str) -> dict[str, Any]:
        resp = self._post("cat", params={"arg": address})
        return self._json(resp, "cat")

    def close(self) -> None:
        self._client.close()
