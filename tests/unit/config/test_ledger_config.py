"""Unit tests for ledger and chain gateway configuration.

Tests cover:
- Defaults and validation
- Environment overrides, with invalid values falling back to defaults
"""

import pytest

from governance_ledger.config import (
    DEFAULT_CHAIN_GATEWAY_CONFIG,
    DEFAULT_LEDGER_CONFIG,
    ChainGatewayConfig,
    LedgerConfig,
)
from governance_ledger.domain.models import ConversionRatios


class TestLedgerConfig:
    def test_defaults(self) -> None:
        assert DEFAULT_LEDGER_CONFIG.sub_to_main_ratio == 10
        assert DEFAULT_LEDGER_CONFIG.main_to_token_ratio == 10
        assert DEFAULT_LEDGER_CONFIG.token_decimals == 18
        assert DEFAULT_LEDGER_CONFIG.ratios == ConversionRatios()

    @pytest.mark.parametrize("ratio", [0, 101])
    def test_ratio_out_of_range(self, ratio: int) -> None:
        with pytest.raises(ValueError, match="between 1 and 100"):
            LedgerConfig(sub_to_main_ratio=ratio)

    def test_negative_decimals(self) -> None:
        with pytest.raises(ValueError, match="token_decimals"):
            LedgerConfig(token_decimals=-1)

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LEDGER_SUB_TO_MAIN_RATIO", "25")
        monkeypatch.setenv("LEDGER_MAIN_TO_TOKEN_RATIO", "not-a-number")
        monkeypatch.setenv("LEDGER_TOKEN_DECIMALS", "6")

        config = LedgerConfig.from_environment()

        assert config.sub_to_main_ratio == 25
        assert config.main_to_token_ratio == 10
        assert config.token_decimals == 6


class TestChainGatewayConfig:
    def test_defaults(self) -> None:
        assert DEFAULT_CHAIN_GATEWAY_CONFIG.timeout_seconds == 45.0
        assert DEFAULT_CHAIN_GATEWAY_CONFIG.max_attempts == 3
        assert DEFAULT_CHAIN_GATEWAY_CONFIG.receipt_poll_attempts == 30

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"base_url": ""}, "base_url"),
            ({"timeout_seconds": 0}, "timeout_seconds"),
            ({"max_attempts": 0}, "max_attempts"),
            ({"backoff_seconds": -1}, "backoff_seconds"),
            ({"receipt_poll_attempts": 0}, "receipt_poll_attempts"),
            ({"receipt_poll_interval": -0.5}, "receipt_poll_interval"),
        ],
    )
    def test_validation(self, kwargs: dict, message: str) -> None:
        with pytest.raises(ValueError, match=message):
            ChainGatewayConfig(**kwargs)

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHAIN_GATEWAY_URL", "http://gateway:9000")
        monkeypatch.setenv("CHAIN_GATEWAY_TIMEOUT", "12.5")
        monkeypatch.setenv("CHAIN_SUBMIT_MAX_ATTEMPTS", "5")
        monkeypatch.delenv("CHAIN_SUBMIT_BACKOFF", raising=False)

        config = ChainGatewayConfig.from_environment()

        assert config.base_url == "http://gateway:9000"
        assert config.timeout_seconds == 12.5
        assert config.max_attempts == 5
        assert config.backoff_seconds == 1.0
