"""
Weighted Voting

Implements:
  - FOR / AGAINST votes during the active window
  - One vote per identity per proposal
  - Pluggable weighing strategy (default: one identity, one vote)
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..constants import GOVERNOR_DEFAULT_VOTE_WEIGHT
from ..exceptions import AlreadyVoted, InsufficientVotingPower, VotingClosed
from ..logger import get_logger
from .access import normalize_identity
from .events import EventLog, VoteCast
from .proposals import Proposal, ProposalStage
from .resolver import OutcomeResolver

logger = get_logger(__name__)

WeightFn = Callable[[str, Proposal], int]


def constant_weight(weight: int = GOVERNOR_DEFAULT_VOTE_WEIGHT) -> WeightFn:
    """Weighing strategy giving every voter the same *weight*."""
    def _weigh(voter: str, proposal: Proposal) -> int:
        return weight
    return _weigh


@dataclass(frozen=True)
class VoteReceipt:
    """Ballot receipt for a voter on a proposal."""
    proposal_id: int
    voter: str
    has_voted: bool = False
    support: Optional[bool] = None
    votes: int = 0
    timestamp: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposalId": self.proposal_id,
            "voter": self.voter,
            "hasVoted": self.has_voted,
            "support": self.support,
            "votes": self.votes,
            "timestamp": self.timestamp,
        }


class VotingModule:
    """
    Accepts votes and keeps the per-proposal tallies.

    Responsibilities:
        - Reject votes outside the ACTIVE stage
        - Reject a second vote from the same identity
        - Add the voter's weight to the FOR or AGAINST tally
        - Emit VoteCast with the running total for that side
    """

    def __init__(
        self,
        resolver: OutcomeResolver,
        events: EventLog,
        get_weight_fn: Optional[WeightFn] = None,
    ):
        """
        Args:
            resolver:       Stage derivation used to gate voting
            events:         Event sink
            get_weight_fn:  Callable(voter, proposal) → int  (vote weight)
        """
        self.resolver = resolver
        self.events = events
        self._get_weight = get_weight_fn or constant_weight()
        self._receipts: Dict[int, Dict[str, VoteReceipt]] = {}

    # ── Cast vote ─────────────────────────────────────────────────────

    def cast_vote(self, proposal: Proposal, voter: str, support: bool) -> VoteReceipt:
        voter = normalize_identity(voter)
        pid = proposal.id

        stage = self.resolver.state(proposal)
        if stage != ProposalStage.ACTIVE:
            logger.warning(
                f"Proposal #{pid}: vote by {voter} rejected (stage={stage.name})"
            )
            raise VotingClosed(f"Voting is closed for proposal #{pid} (stage={stage.name})")

        if voter in proposal.voters:
            raise AlreadyVoted(f"{voter} already voted on proposal #{pid}")

        weight = self._get_weight(voter, proposal)
        if weight <= 0:
            raise InsufficientVotingPower(f"{voter} has no voting power on proposal #{pid}")

        proposal.voters.add(voter)
        if support:
            proposal.for_votes += weight
            running = proposal.for_votes
        else:
            proposal.against_votes += weight
            running = proposal.against_votes

        receipt = VoteReceipt(
            proposal_id=pid,
            voter=voter,
            has_voted=True,
            support=bool(support),
            votes=weight,
            timestamp=self.resolver.clock.now(),
        )
        self._receipts.setdefault(pid, {})[voter] = receipt

        logger.info(
            f"Vote: {voter} → {'FOR' if support else 'AGAINST'} on Proposal #{pid} "
            f"(weight={weight}, for={proposal.for_votes}, against={proposal.against_votes})"
        )
        self.events.emit(VoteCast(voter, pid, bool(support), running))
        return receipt

    # ── Queries ───────────────────────────────────────────────────────

    def get_receipt(self, proposal_id: int, voter: str) -> VoteReceipt:
        voter = normalize_identity(voter)
        receipt = self._receipts.get(proposal_id, {}).get(voter)
        if receipt is None:
            return VoteReceipt(proposal_id=proposal_id, voter=voter)
        return receipt

    def get_votes(self, proposal_id: int) -> List[VoteReceipt]:
        return list(self._receipts.get(proposal_id, {}).values())

    def has_voted(self, proposal_id: int, voter: str) -> bool:
        return self.get_receipt(proposal_id, voter).has_voted

    def voter_count(self, proposal_id: int) -> int:
        return len(self._receipts.get(proposal_id, {}))

    def __repr__(self) -> str:
        return f"<VotingModule proposals={len(self._receipts)}>"
