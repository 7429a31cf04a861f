"""In-memory stub for VoteRepositoryProtocol.

Enforces the (proposal_id, voter_id) uniqueness constraint and applies
tally increments atomically under a lock.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import replace
from datetime import datetime, timezone

from governance_ledger.domain.errors import DuplicateVoteError
from governance_ledger.domain.models import UserVote, VoteAggregate


class VoteRepositoryStub:
    """In-memory votes and tallies."""

    def __init__(self) -> None:
        """Initialize empty stub."""
        # Key: (proposal_id, voter_id)
        self._votes: dict[tuple[int, str], UserVote] = {}
        self._aggregates: dict[int, VoteAggregate] = {}
        self._lock = threading.Lock()

    async def insert_vote(self, vote: UserVote) -> None:
        await asyncio.sleep(0)
        key = (vote.proposal_id, vote.voter_id)
        with self._lock:
            existing = self._votes.get(key)
            if existing is not None:
                raise DuplicateVoteError(
                    proposal_id=vote.proposal_id,
                    voter_id=vote.voter_id,
                    existing_vote_id=existing.vote_id,
                    voted_at=existing.voted_at,
                )
            self._votes[key] = vote

    async def get_vote(self, proposal_id: int, voter_id: str) -> UserVote | None:
        await asyncio.sleep(0)
        with self._lock:
            return self._votes.get((proposal_id, voter_id))

    async def delete_vote(self, proposal_id: int, voter_id: str) -> bool:
        await asyncio.sleep(0)
        with self._lock:
            return self._votes.pop((proposal_id, voter_id), None) is not None

    async def set_external_tx_hash(
        self, proposal_id: int, voter_id: str, tx_hash: str
    ) -> None:
        await asyncio.sleep(0)
        key = (proposal_id, voter_id)
        with self._lock:
            current = self._votes.get(key)
            if current is not None:
                self._votes[key] = replace(current, external_tx_hash=tx_hash)

    async def list_votes(self, proposal_id: int) -> list[UserVote]:
        await asyncio.sleep(0)
        with self._lock:
            votes = [v for v in self._votes.values() if v.proposal_id == proposal_id]
        return sorted(votes, key=lambda v: (v.voted_at, v.vote_id))

    async def list_votes_by_voter(self, voter_id: str) -> list[UserVote]:
        await asyncio.sleep(0)
        with self._lock:
            votes = [v for v in self._votes.values() if v.voter_id == voter_id]
        return sorted(votes, key=lambda v: (v.voted_at, v.vote_id), reverse=True)

    async def ensure_aggregate(self, proposal_id: int) -> None:
        await asyncio.sleep(0)
        with self._lock:
            if proposal_id not in self._aggregates:
                self._aggregates[proposal_id] = VoteAggregate(
                    proposal_id=proposal_id, last_updated=datetime.now(timezone.utc)
                )

    async def get_aggregate(self, proposal_id: int) -> VoteAggregate | None:
        await asyncio.sleep(0)
        with self._lock:
            return self._aggregates.get(proposal_id)

    async def increment_aggregate(
        self, proposal_id: int, support: bool, voting_power: int
    ) -> bool:
        await asyncio.sleep(0)
        with self._lock:
            current = self._aggregates.get(proposal_id)
            if current is None:
                return False
            if support:
                updated = replace(
                    current,
                    for_votes=current.for_votes + voting_power,
                    for_voters=current.for_voters + 1,
                    total_voters=current.total_voters + 1,
                )
            else:
                updated = replace(
                    current,
                    against_votes=current.against_votes + voting_power,
                    against_voters=current.against_voters + 1,
                    total_voters=current.total_voters + 1,
                )
            self._aggregates[proposal_id] = replace(
                updated,
                version=current.version + 1,
                last_updated=datetime.now(timezone.utc),
            )
            return True

    async def overwrite_aggregate(self, aggregate: VoteAggregate) -> VoteAggregate:
        await asyncio.sleep(0)
        with self._lock:
            current = self._aggregates.get(aggregate.proposal_id)
            version = (current.version if current is not None else 0) + 1
            stored = replace(
                aggregate, version=version, last_updated=datetime.now(timezone.utc)
            )
            self._aggregates[aggregate.proposal_id] = stored
            return stored

    # Test helpers

    def add_vote(self, vote: UserVote) -> None:
        """Store a vote without touching the tally (simulates drift)."""
        with self._lock:
            self._votes[(vote.proposal_id, vote.voter_id)] = vote

    def set_aggregate(self, aggregate: VoteAggregate) -> None:
        """Force a tally, bypassing the votes (simulates drift)."""
        with self._lock:
            self._aggregates[aggregate.proposal_id] = aggregate

    def drop_aggregate(self, proposal_id: int) -> None:
        with self._lock:
            self._aggregates.pop(proposal_id, None)

    @property
    def vote_count(self) -> int:
        with self._lock:
            return len(self._votes)

    def reset(self) -> None:
        with self._lock:
            self._votes.clear()
            self._aggregates.clear()
