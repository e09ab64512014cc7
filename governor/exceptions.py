"""
Governor Exceptions

Error taxonomy surfaced by the governance engine. Every error is raised
synchronously at the failed check, before any proposal state is touched.
"""

from enum import IntEnum
from typing import Optional


class GovernorError(Exception):
    """Base exception for the governance engine."""
    pass


class AlreadyInitialized(GovernorError):
    """Setup invoked more than once."""
    pass


class NotInitialized(GovernorError):
    """Engine used before setup."""
    pass


class Unauthorized(GovernorError):
    """Caller lacks the capability required for the operation."""
    pass


class InvalidProposal(GovernorError):
    """Proposal payload is malformed (quorum, call arity)."""
    pass


class InvalidWindow(InvalidProposal):
    """Proposal timestamps violate the required ordering."""
    pass


class NotFound(GovernorError):
    """Referenced proposal id does not exist."""
    pass


class VotingClosed(GovernorError):
    """Vote attempted outside the active window."""
    pass


class AlreadyVoted(GovernorError):
    """Caller already voted on this proposal."""
    pass


class InsufficientVotingPower(GovernorError):
    """Weighing strategy returned no voting power for the caller."""
    pass


class NotSucceeded(GovernorError):
    """Queue attempted on a proposal that is not in the succeeded stage."""
    pass


class QueueWindowExpired(GovernorError):
    """Queue attempted after the queue deadline."""
    pass


class NotQueued(GovernorError):
    """Defeat finalization attempted on a proposal that is not queued."""
    pass


class NotDefeated(GovernorError):
    """Defeat finalization attempted on a queued proposal that met its bar."""
    pass


class NotCancelable(GovernorError):
    """Cancel attempted on an executed, canceled or defeated proposal."""
    pass


class ExecutionBlock(IntEnum):
    """Internal cause behind a NotExecutable error."""
    NOT_QUEUED = 1
    NOT_READY = 2
    EXPIRED = 3
    TERMINAL = 4
    IN_PROGRESS = 5


class NotExecutable(GovernorError):
    """
    Execute attempted on a proposal that cannot run right now.

    The public message is uniform; ``reason`` keeps the internal cause.
    """

    def __init__(self, proposal_id: int, reason: ExecutionBlock):
        self.proposal_id = proposal_id
        self.reason = reason
        super().__init__(
            f"Proposal #{proposal_id} can only be executed if it is queued"
        )


class ExecutionFailed(GovernorError):
    """
    Execution aborted before any effect was kept; the proposal stays queued.

    ``call_index`` is None when nothing was dispatched (the target state
    could not be captured or the target cannot roll back).
    """

    def __init__(self, proposal_id: int, call_index: Optional[int], error: Optional[str]):
        self.proposal_id = proposal_id
        self.call_index = call_index
        self.error = error
        if call_index is None:
            message = f"Proposal #{proposal_id}: execution aborted ({error})"
        else:
            message = f"Proposal #{proposal_id}: call {call_index} reverted ({error})"
        super().__init__(message)


class ProposalLifecycleError(GovernorError):
    """Raised on an illegal recorded-stage transition."""
    pass


class ConfigurationError(GovernorError):
    """Configuration error."""
    pass
