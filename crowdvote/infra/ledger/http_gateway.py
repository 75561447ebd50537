# ============================================================
# Module : crowdvote/infra/ledger/http_gateway.py
# Objet  : Client du relais HTTP qui signe et diffuse les transactions.
# Contexte : 400/409/422 = refus du contrat (LedgerRejected);
#            tout autre échec = UpstreamUnavailable.
# ============================================================

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
import structlog

from crowdvote.domain.entities import Signer, VoteChoice
from crowdvote.domain.errors import LedgerRejected, UpstreamUnavailable
from crowdvote.infra.ledger.base import Ledger, LedgerReceipt, LedgerResults, SubmissionResult

_REJECTION_CODES = {400, 409, 422}
_MALFORMED = (KeyError, TypeError, ValueError, InvalidOperation)


class HttpLedgerGateway(Ledger):
    """Ledger accessible via un relais HTTP/JSON."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        network: str = "localhost",
        timeout_seconds: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.network = network
        self._log = structlog.get_logger(__name__).bind(component="ledger_gateway", network=network)
        if client is None:
            headers: dict[str, str] = {"Content-Type": "application/json"}
            if token:
                headers["Authorization"] = f"Bearer {token}"
            client = httpx.Client(headers=headers, timeout=httpx.Timeout(timeout_seconds))
        self._client = client

    def _call(self, method: str, path: str, payload: dict[str, Any] | None = None) -> dict:
        url = f"{self.base_url}{path}"
        try:
            resp = self._client.request(method, url, json=payload)
        except httpx.HTTPError as err:
            self._log.warning("ledger_call_failed", path=path, error=type(err).__name__)
            raise UpstreamUnavailable("ledger") from err
        if resp.status_code in _REJECTION_CODES:
            try:
                reason = str(resp.json().get("error", "rejected"))
            except (ValueError, AttributeError):
                reason = "rejected"
            raise LedgerRejected(reason)
        if resp.is_error:
            self._log.warning("ledger_call_failed", path=path, status=resp.status_code)
            raise UpstreamUnavailable("ledger")
        try:
            data = resp.json()
        except ValueError as err:
            raise UpstreamUnavailable("ledger", "malformed ledger response") from err
        if not isinstance(data, dict):
            raise UpstreamUnavailable("ledger", "malformed ledger response")
        return data

    def submit_content(
        self, metadata_ref: str, duration_seconds: int, signer: Signer
    ) -> SubmissionResult:
        data = self._call(
            "POST",
            "/content",
            {
                "network": self.network,
                "metadataRef": metadata_ref,
                "durationSeconds": duration_seconds,
                "signer": signer.address,
            },
        )
        try:
            return SubmissionResult(int(data["contentId"]), str(data["transactionHash"]))
        except _MALFORMED as err:
            raise UpstreamUnavailable("ledger", "malformed ledger response") from err

    def reveal_vote(
        self,
        content_id: int,
        vote: VoteChoice,
        confidence: int,
        salt: str,
        signer: Signer,
    ) -> LedgerReceipt:
        data = self._call(
            "POST",
            f"/content/{int(content_id)}/reveal",
            {
                "network": self.network,
                "vote": int(vote),
                "confidence": confidence,
                "salt": salt,
                "signer": signer.address,
            },
        )
        try:
            return LedgerReceipt(str(data["transactionHash"]), str(data.get("status", "success")))
        except _MALFORMED as err:
            raise UpstreamUnavailable("ledger", "malformed ledger response") from err

    def get_results(self, content_id: int) -> LedgerResults:
        data = self._call("GET", f"/content/{int(content_id)}/results")
        try:
            return LedgerResults(
                content_id=int(content_id),
                finalized=bool(data.get("finalized", False)),
                upvotes=int(data.get("upvotes", 0)),
                downvotes=int(data.get("downvotes", 0)),
                total_usd_value=Decimal(str(data.get("totalUSDValue", "0"))),
            )
        except _MALFORMED as err:
            raise UpstreamUnavailable("ledger", "malformed ledger response") from err

    def close(self) -> None:
        self._client.close()
