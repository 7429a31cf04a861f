"""Voting power derived from a user's token balance."""

from __future__ import annotations

from governance_ledger.application.ports.balance_repository import (
    BalanceRepositoryProtocol,
)


class TokenBalanceVotingPowerProvider:
    """Voting power = token balance scaled to the token's smallest unit.

    With 18 decimals a balance of 3 tokens votes with 3 * 10**18.
    """

    def __init__(self, balance_repo: BalanceRepositoryProtocol, token_decimals: int = 18) -> None:
        self._balances = balance_repo
        self._scale = 10**token_decimals

    async def voting_power(self, voter_id: str) -> int:
        balance = await self._balances.get(voter_id)
        if balance is None:
            return 0
        return balance.token_balance * self._scale
