"""HTTP client for the chain gateway that fronts the governance contract.

The gateway signs and broadcasts transactions; this client only speaks its
JSON API:

    POST /proposals                     {"proposal_id", "description", "deadline"}
    POST /proposals/{id}/votes          {"voter_id", "support"}
    GET  /transactions/{tx_hash}        {"status": "pending" | "confirmed" | "failed"}
    GET  /proposals/count               {"proposal_count"} or {"next_proposal_id"}

Submissions answer with {"tx_hash", "status"}. A pending transaction is
polled until the receipt is final. Every failure of one call surfaces as
ExternalAuthorityUnavailableError; retries belong to the caller.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any

import httpx
import structlog

from governance_ledger.config.ledger_config import ChainGatewayConfig
from governance_ledger.domain.errors import ExternalAuthorityUnavailableError

log = structlog.get_logger()

TX_PENDING = "pending"
TX_CONFIRMED = "confirmed"
TX_FAILED = "failed"


class ChainGatewayClient:
    """ExternalAuthorityProtocol implementation over HTTP.

    Pass ``client`` to share a connection pool or to inject a mock
    transport in tests; otherwise one AsyncClient is created lazily and
    closed by ``aclose()``.
    """

    def __init__(
        self,
        config: ChainGatewayConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._owns_client = client is None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=self._config.timeout_seconds,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def submit_proposal(
        self, proposal_id: int, description: str, deadline: datetime
    ) -> str:
        body = await self._request(
            "submit_proposal",
            "POST",
            "/proposals",
            json={
                "proposal_id": proposal_id,
                "description": description,
                "deadline": int(deadline.timestamp()),
            },
        )
        return await self._await_receipt("submit_proposal", body)

    async def submit_vote(self, proposal_id: int, voter_id: str, support: bool) -> str:
        body = await self._request(
            "submit_vote",
            "POST",
            f"/proposals/{proposal_id}/votes",
            json={"voter_id": voter_id, "support": support},
        )
        return await self._await_receipt("submit_vote", body)

    async def query_highest_id(self) -> int:
        body = await self._request("query_highest_id", "GET", "/proposals/count")
        count = body.get("proposal_count")
        if _is_count(count):
            return int(count)
        # Older contracts only expose the next id to be issued
        next_id = body.get("next_proposal_id")
        if _is_count(next_id) and int(next_id) >= 1:
            return int(next_id) - 1
        raise ExternalAuthorityUnavailableError(
            "query_highest_id", f"malformed response: {body!r}"
        )

    async def _await_receipt(self, operation: str, body: dict[str, Any]) -> str:
        tx_hash = body.get("tx_hash")
        if not isinstance(tx_hash, str) or not tx_hash:
            raise ExternalAuthorityUnavailableError(operation, "response missing tx_hash")

        status = body.get("status", TX_PENDING)
        for attempt in range(self._config.receipt_poll_attempts):
            if status == TX_CONFIRMED:
                return tx_hash
            if status == TX_FAILED:
                log.warning("chain_transaction_failed", operation=operation, tx_hash=tx_hash)
                raise ExternalAuthorityUnavailableError(
                    operation, f"transaction {tx_hash} failed"
                )
            if attempt > 0 and self._config.receipt_poll_interval > 0:
                await asyncio.sleep(self._config.receipt_poll_interval)
            receipt = await self._request(operation, "GET", f"/transactions/{tx_hash}")
            status = receipt.get("status", TX_PENDING)

        if status == TX_CONFIRMED:
            return tx_hash
        if status == TX_FAILED:
            raise ExternalAuthorityUnavailableError(
                operation, f"transaction {tx_hash} failed"
            )
        raise ExternalAuthorityUnavailableError(
            operation, f"no receipt for {tx_hash} after {self._config.receipt_poll_attempts} polls"
        )

    async def _request(
        self, operation: str, method: str, path: str, json: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        try:
            response = await self._http().request(method, path, json=json)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            raise ExternalAuthorityUnavailableError(
                operation, f"HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalAuthorityUnavailableError(operation, str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            raise ExternalAuthorityUnavailableError(operation, "invalid JSON") from exc
        if not isinstance(body, dict):
            raise ExternalAuthorityUnavailableError(operation, "expected JSON object")
        return body


def _is_count(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0
