"""
Time-gated governance engine

Provides:
  - ProposalStage / ProposalCall / ProposalSpec / Proposal / ProposalStore  (proposals.py)
  - AccessControl                                                       (access.py)
  - VotingModule / VoteReceipt                                          (voting.py)
  - OutcomeResolver                                                     (resolver.py)
  - Scheduler                                                           (scheduler.py)
  - ExecutionTarget / ContractRegistry / ExecutionEngine                (execution.py)
  - Governance events / EventLog                                        (events.py)
  - Governor                                                            (governor.py)
"""

from .proposals import (
    Proposal,
    ProposalCall,
    ProposalSpec,
    ProposalStage,
    ProposalStore,
)
from .access import AccessControl, normalize_identity
from .events import (
    EventLog,
    ProposalCanceled,
    ProposalCreated,
    ProposalDefeated,
    ProposalExecuted,
    ProposalQueued,
    VoteCast,
)
from .resolver import OutcomeResolver
from .voting import VoteReceipt, VotingModule, constant_weight
from .scheduler import Scheduler
from .execution import (
    CallResult,
    ContractRegistry,
    ExecutionEngine,
    ExecutionTarget,
    TransactionalTarget,
    external,
)
from .governor import Governor

__all__ = [
    # Proposals
    "Proposal",
    "ProposalCall",
    "ProposalSpec",
    "ProposalStage",
    "ProposalStore",
    # Access
    "AccessControl",
    "normalize_identity",
    # Events
    "EventLog",
    "ProposalCanceled",
    "ProposalCreated",
    "ProposalDefeated",
    "ProposalExecuted",
    "ProposalQueued",
    "VoteCast",
    # Voting / resolution / scheduling
    "OutcomeResolver",
    "VoteReceipt",
    "VotingModule",
    "constant_weight",
    "Scheduler",
    # Execution
    "CallResult",
    "ContractRegistry",
    "ExecutionEngine",
    "ExecutionTarget",
    "TransactionalTarget",
    "external",
    # Facade
    "Governor",
]
