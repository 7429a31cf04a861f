"""Ledger and chain gateway configuration.

Environment Variables (Ledger):
- LEDGER_SUB_TO_MAIN_RATIO: Sub points per main point (default: 10, range 1-100)
- LEDGER_MAIN_TO_TOKEN_RATIO: Main points per token (default: 10, range 1-100)
- LEDGER_TOKEN_DECIMALS: Decimals used to express token balance as voting
  power (default: 18)

Environment Variables (Chain gateway):
- CHAIN_GATEWAY_URL: Base URL of the chain gateway (default: http://localhost:8545)
- CHAIN_GATEWAY_TIMEOUT: Per-attempt timeout in seconds, receipt wait included (default: 45.0)
- CHAIN_SUBMIT_MAX_ATTEMPTS: Attempts per submission (default: 3)
- CHAIN_SUBMIT_BACKOFF: Fixed delay between attempts in seconds (default: 1.0)
- CHAIN_RECEIPT_POLL_ATTEMPTS: Receipt polls per attempt (default: 30)
- CHAIN_RECEIPT_POLL_INTERVAL: Delay between receipt polls in seconds (default: 1.0)
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from governance_ledger.domain.models import MAX_RATIO, MIN_RATIO, ConversionRatios


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    """Get float environment variable with default."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class LedgerConfig:
    """Configuration for point conversion and voting power.

    Attributes:
        sub_to_main_ratio: Sub points required per main point.
        main_to_token_ratio: Main points required per token.
        token_decimals: Token balance is scaled by 10**token_decimals when
            used as voting power.
    """

    sub_to_main_ratio: int = 10
    main_to_token_ratio: int = 10
    token_decimals: int = 18

    def __post_init__(self) -> None:
        """Validate configuration values."""
        for name in ("sub_to_main_ratio", "main_to_token_ratio"):
            value = getattr(self, name)
            if not MIN_RATIO <= value <= MAX_RATIO:
                raise ValueError(
                    f"{name} must be between {MIN_RATIO} and {MAX_RATIO}, got {value}"
                )
        if self.token_decimals < 0:
            raise ValueError(
                f"token_decimals must be non-negative, got {self.token_decimals}"
            )

    @property
    def ratios(self) -> ConversionRatios:
        return ConversionRatios(
            sub_to_main=self.sub_to_main_ratio,
            main_to_token=self.main_to_token_ratio,
        )

    @classmethod
    def from_environment(cls) -> "LedgerConfig":
        """Create config from environment variables with defaults."""
        return cls(
            sub_to_main_ratio=_get_int_env("LEDGER_SUB_TO_MAIN_RATIO", 10),
            main_to_token_ratio=_get_int_env("LEDGER_MAIN_TO_TOKEN_RATIO", 10),
            token_decimals=_get_int_env("LEDGER_TOKEN_DECIMALS", 18),
        )


@dataclass(frozen=True)
class ChainGatewayConfig:
    """Configuration for the external chain gateway.

    Attributes:
        base_url: Gateway base URL.
        timeout_seconds: Bound on each single attempt.
        max_attempts: Attempts per submission before giving up.
        backoff_seconds: Fixed delay between attempts.
        receipt_poll_attempts: Receipt polls before an attempt gives up.
        receipt_poll_interval: Delay between receipt polls.
    """

    base_url: str = "http://localhost:8545"
    timeout_seconds: float = 45.0
    max_attempts: int = 3
    backoff_seconds: float = 1.0
    receipt_poll_attempts: int = 30
    receipt_poll_interval: float = 1.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.base_url:
            raise ValueError("base_url must not be empty")
        if self.timeout_seconds <= 0:
            raise ValueError(
                f"timeout_seconds must be positive, got {self.timeout_seconds}"
            )
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.backoff_seconds < 0:
            raise ValueError(
                f"backoff_seconds must be non-negative, got {self.backoff_seconds}"
            )
        if self.receipt_poll_attempts < 1:
            raise ValueError(
                f"receipt_poll_attempts must be at least 1, got {self.receipt_poll_attempts}"
            )
        if self.receipt_poll_interval < 0:
            raise ValueError(
                f"receipt_poll_interval must be non-negative, got {self.receipt_poll_interval}"
            )

    @classmethod
    def from_environment(cls) -> "ChainGatewayConfig":
        """Create config from environment variables with defaults."""
        return cls(
            base_url=os.environ.get("CHAIN_GATEWAY_URL", "http://localhost:8545"),
            timeout_seconds=_get_float_env("CHAIN_GATEWAY_TIMEOUT", 45.0),
            max_attempts=_get_int_env("CHAIN_SUBMIT_MAX_ATTEMPTS", 3),
            backoff_seconds=_get_float_env("CHAIN_SUBMIT_BACKOFF", 1.0),
            receipt_poll_attempts=_get_int_env("CHAIN_RECEIPT_POLL_ATTEMPTS", 30),
            receipt_poll_interval=_get_float_env("CHAIN_RECEIPT_POLL_INTERVAL", 1.0),
        )


DEFAULT_LEDGER_CONFIG = LedgerConfig()

DEFAULT_CHAIN_GATEWAY_CONFIG = ChainGatewayConfig()

# Testing config: fast failure, no real sleeps
TEST_CHAIN_GATEWAY_CONFIG = ChainGatewayConfig(
    base_url="http://chain-gateway.test",
    timeout_seconds=0.5,
    max_attempts=3,
    backoff_seconds=0.0,
    receipt_poll_attempts=3,
    receipt_poll_interval=0.0,
)
