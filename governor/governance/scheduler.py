"""
Queueing of succeeded proposals for later execution.
"""

from typing import Dict, List, Optional

from ..constants import GOVERNOR_EXECUTION_DELAY_SECONDS
from ..logger import get_logger
from .events import EventLog, ProposalQueued
from .proposals import Proposal, ProposalStage
from .resolver import OutcomeResolver

logger = get_logger(__name__)


class Scheduler:
    """
    Moves SUCCEEDED proposals into QUEUED.

    A queued proposal becomes executable ``execution_delay`` time units
    after the queue call, never in the same instant.
    """

    def __init__(
        self,
        resolver: OutcomeResolver,
        events: EventLog,
        execution_delay: int = GOVERNOR_EXECUTION_DELAY_SECONDS,
    ):
        if execution_delay < 0:
            raise ValueError(f"execution_delay must be >= 0 (got {execution_delay})")
        self.resolver = resolver
        self.events = events
        self.execution_delay = execution_delay
        self._etas: Dict[int, int] = {}  # proposal_id → executable_at

    def queue(self, proposal: Proposal) -> int:
        """Queue *proposal* and return the time it becomes executable."""
        now = self.resolver.require_queueable(proposal)
        eta = now + self.execution_delay

        proposal.record_stage(ProposalStage.QUEUED, now, f"Queued with ETA {eta}")
        proposal.executable_at = eta
        self._etas[proposal.id] = eta

        logger.info(
            f"Proposal #{proposal.id} queued with {self.execution_delay}s delay "
            f"(ETA={eta}, deadline={proposal.end_execute_time})"
        )
        self.events.emit(ProposalQueued(proposal.id, eta))
        return eta

    def get_eta(self, proposal_id: int) -> Optional[int]:
        return self._etas.get(proposal_id)

    def queued_ids(self) -> List[int]:
        return sorted(self._etas)

    def __repr__(self) -> str:
        return f"<Scheduler delay={self.execution_delay} queued={len(self._etas)}>"
