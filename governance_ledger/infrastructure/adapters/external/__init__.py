"""Adapters for systems outside the ledger's transactional control."""

from governance_ledger.infrastructure.adapters.external.chain_gateway_client import (
    ChainGatewayClient,
)

__all__ = ["ChainGatewayClient"]
