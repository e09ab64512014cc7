"""
Outcome resolution

Derives a proposal's logical stage from the clock and its recorded stage,
gates queueing on that stage, and finalizes queued proposals that failed
their quorum/majority bar.
"""

from ..clock import Clock
from ..exceptions import NotDefeated, NotQueued, NotSucceeded, QueueWindowExpired
from ..logger import get_logger
from .events import EventLog, ProposalDefeated
from .proposals import Proposal, ProposalStage

logger = get_logger(__name__)


class OutcomeResolver:
    """
    Stage derivation rules, in order:

        1. a recorded stage (queued, defeated, executed, canceled) wins;
        2. before ``start_time`` the proposal is PENDING;
        3. before ``end_time`` it is ACTIVE;
        4. afterwards it is SUCCEEDED.

    Tallies are not consulted when voting closes; a proposal that missed
    its bar is only finalized through ``mark_defeated`` once queued.
    """

    def __init__(self, clock: Clock, events: EventLog):
        self.clock = clock
        self.events = events

    def state(self, proposal: Proposal) -> ProposalStage:
        if proposal.recorded_stage is not None:
            return proposal.recorded_stage
        now = self.clock.now()
        if now < proposal.start_time:
            return ProposalStage.PENDING
        if now < proposal.end_time:
            return ProposalStage.ACTIVE
        return ProposalStage.SUCCEEDED

    def require_queueable(self, proposal: Proposal) -> int:
        """Check the queue preconditions and return the current time."""
        stage = self.state(proposal)
        if stage != ProposalStage.SUCCEEDED:
            logger.warning(
                f"Proposal #{proposal.id}: queue rejected (stage={stage.name})"
            )
            raise NotSucceeded(
                f"Proposal #{proposal.id} can only be queued if it is succeeded "
                f"(stage={stage.name})"
            )
        now = self.clock.now()
        if now >= proposal.end_queued_time:
            logger.warning(
                f"Proposal #{proposal.id}: queue rejected, deadline "
                f"{proposal.end_queued_time} passed"
            )
            raise QueueWindowExpired(
                f"Proposal #{proposal.id} can only be queued before "
                f"{proposal.end_queued_time} (now={now})"
            )
        return now

    def mark_defeated(self, proposal: Proposal) -> None:
        """QUEUED → DEFEATED when FOR votes miss quorum or majority."""
        if proposal.recorded_stage != ProposalStage.QUEUED:
            stage = self.state(proposal)
            logger.warning(
                f"Proposal #{proposal.id}: defeat rejected (stage={stage.name})"
            )
            raise NotQueued(
                f"Proposal #{proposal.id} can only be defeated when queued "
                f"(stage={stage.name})"
            )
        if proposal.meets_bar:
            raise NotDefeated(
                f"Proposal #{proposal.id} met its bar "
                f"(for={proposal.for_votes}, against={proposal.against_votes}, "
                f"quorum={proposal.quorum})"
            )
        proposal.record_stage(
            ProposalStage.DEFEATED,
            self.clock.now(),
            f"for={proposal.for_votes} against={proposal.against_votes} "
            f"quorum={proposal.quorum}",
        )
        self.events.emit(ProposalDefeated(proposal.id))
