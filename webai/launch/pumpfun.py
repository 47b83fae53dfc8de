"""
Pump.fun launch gateway.

Two launch methods exist:
- "api": the server submits the create request to the launch API with its
  own API key (only when PUMPPORTAL_API_KEY is set);
- "onchain": the user's wallet signs and sends the transaction, and the
  server later verifies the signature through Solana JSON-RPC.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from webai.errors import UpstreamFailure
from webai.storage.models import TokenDraft

logger = logging.getLogger(__name__)

# Rough network and rent cost of creating a token, excluding the dev buy
BASE_CREATE_COST_SOL = 0.02
CONFIRMED_STATUSES = ("confirmed", "finalized")


@dataclass(frozen=True)
class SubmitResult:
    success: bool
    tx_signature: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class VerifyResult:
    confirmed: bool
    mint_address: str | None = None


def token_metadata(token: TokenDraft) -> dict[str, Any]:
    metadata = {
        "name": token.name,
        "symbol": token.symbol,
        "description": token.description,
    }
    for key in ("website", "twitter", "telegram"):
        value = getattr(token, key)
        if value:
            metadata[key] = value
    return metadata


class PumpFunGateway:
    """Builds launch payloads, submits API launches and verifies signatures."""

    def __init__(
        self,
        config: dict[str, Any],
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.rpc_url = config["rpc_url"]
        self.api_url = config.get("api_url", "")
        self.api_key = config.get("api_key", "")
        self.pool = config.get("pool", "pump")
        self.dev_buy_sol = float(config.get("dev_buy_sol", 0.0))
        self.slippage = config.get("slippage", 10)
        self.priority_fee = float(config.get("priority_fee", 0.0005))
        self.client = httpx.AsyncClient(timeout=httpx.Timeout(30.0), transport=transport)

    @property
    def api_enabled(self) -> bool:
        return bool(self.api_key and self.api_url)

    def build_launch_payload(
        self, token: TokenDraft, wallet_address: str
    ) -> dict[str, Any]:
        """Payload stored on the launch attempt and shown to the user."""
        metadata = token_metadata(token)
        estimated_cost = round(
            BASE_CREATE_COST_SOL + self.dev_buy_sol + self.priority_fee, 6
        )
        if self.api_enabled:
            return {
                "method": "api",
                "walletAddress": wallet_address,
                "estimatedCostSol": estimated_cost,
                "apiPayload": {
                    "action": "create",
                    "tokenMetadata": metadata,
                    "denominatedInSol": "true",
                    "amount": self.dev_buy_sol,
                    "slippage": self.slippage,
                    "priorityFee": self.priority_fee,
                    "pool": self.pool,
                },
            }
        return {
            "method": "onchain",
            "walletAddress": wallet_address,
            "estimatedCostSol": estimated_cost,
            "tokenMetadata": metadata,
            "pool": self.pool,
        }

    async def submit_via_api(self, api_payload: dict[str, Any]) -> SubmitResult:
        """Submit a prepared create request. Failures are returned, not raised."""
        try:
            response = await self.client.post(
                self.api_url, params={"api-key": self.api_key}, json=api_payload
            )
        except httpx.HTTPError as e:
            logger.error(f"Launch API request failed: {e}")
            return SubmitResult(False, error=f"Launch API request failed: {e}")

        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code != 200 or not data.get("signature"):
            errors = data.get("errors") or data.get("error") or response.text
            logger.warning(f"Launch API rejected create: {errors}")
            return SubmitResult(False, error=f"Launch API error: {errors}")

        return SubmitResult(True, tx_signature=data["signature"])

    async def verify_launch(self, tx_signature: str) -> VerifyResult:
        """
        Check that a signature is confirmed and find the minted token.

        Raises:
            UpstreamFailure: If the RPC endpoint cannot be reached.
        """
        statuses = await self._rpc(
            "getSignatureStatuses",
            [[tx_signature], {"searchTransactionHistory": True}],
        )
        status = (statuses or {}).get("value", [None])[0]
        if (
            not status
            or status.get("err") is not None
            or status.get("confirmationStatus") not in CONFIRMED_STATUSES
        ):
            return VerifyResult(False)

        transaction = await self._rpc(
            "getTransaction",
            [tx_signature, {"encoding": "jsonParsed", "maxSupportedTransactionVersion": 0}],
        )
        balances = ((transaction or {}).get("meta") or {}).get("postTokenBalances") or []
        mint = balances[0].get("mint") if balances else None
        return VerifyResult(True, mint_address=mint)

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        body = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            response = await self.client.post(self.rpc_url, json=body)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamFailure(f"Solana RPC {method} failed: {e}") from e
        if "error" in data:
            raise UpstreamFailure(f"Solana RPC {method} error: {data['error']}")
        return data.get("result")

    async def close(self) -> None:
        await self.client.aclose()
