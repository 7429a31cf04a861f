"""Configuration dataclasses loaded from the environment."""

from governance_ledger.config.ledger_config import (
    DEFAULT_CHAIN_GATEWAY_CONFIG,
    DEFAULT_LEDGER_CONFIG,
    TEST_CHAIN_GATEWAY_CONFIG,
    ChainGatewayConfig,
    LedgerConfig,
)

__all__ = [
    "DEFAULT_CHAIN_GATEWAY_CONFIG",
    "DEFAULT_LEDGER_CONFIG",
    "TEST_CHAIN_GATEWAY_CONFIG",
    "ChainGatewayConfig",
    "LedgerConfig",
]
