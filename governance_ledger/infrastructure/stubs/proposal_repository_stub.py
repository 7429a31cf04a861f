"""In-memory stub for ProposalRepositoryProtocol."""

from __future__ import annotations

import asyncio
import threading
from dataclasses import replace

from governance_ledger.domain.errors import ProposalAlreadyExistsError
from governance_ledger.domain.models import Proposal


class ProposalRepositoryStub:
    """In-memory proposals keyed by their synchronized id."""

    def __init__(self) -> None:
        """Initialize empty stub."""
        self._proposals: dict[int, Proposal] = {}
        self._lock = threading.Lock()

    async def insert(self, proposal: Proposal) -> None:
        await asyncio.sleep(0)
        with self._lock:
            if proposal.proposal_id in self._proposals:
                raise ProposalAlreadyExistsError(proposal.proposal_id)
            self._proposals[proposal.proposal_id] = proposal

    async def get(self, proposal_id: int) -> Proposal | None:
        await asyncio.sleep(0)
        with self._lock:
            return self._proposals.get(proposal_id)

    async def set_executed(self, proposal_id: int) -> bool:
        await asyncio.sleep(0)
        with self._lock:
            current = self._proposals.get(proposal_id)
            if current is None or current.canceled:
                return False
            self._proposals[proposal_id] = replace(current, executed=True)
            return True

    async def set_canceled(self, proposal_id: int) -> bool:
        await asyncio.sleep(0)
        with self._lock:
            current = self._proposals.get(proposal_id)
            if current is None or current.executed:
                return False
            self._proposals[proposal_id] = replace(current, canceled=True)
            return True

    async def list_ids(self) -> list[int]:
        await asyncio.sleep(0)
        with self._lock:
            return sorted(self._proposals)

    # Test helpers

    def add_proposal(self, proposal: Proposal) -> None:
        with self._lock:
            self._proposals[proposal.proposal_id] = proposal

    def reset(self) -> None:
        with self._lock:
            self._proposals.clear()
