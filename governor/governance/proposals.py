"""
Governance Proposals

Defines the proposal stages, the call payload a proposal carries, the
Proposal record tracking one governance item from creation to its final
stage, and the ProposalStore that hands out sequential identifiers.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple, Union

from ..constants import GOVERNOR_FIRST_PROPOSAL_ID
from ..exceptions import (
    InvalidProposal,
    InvalidWindow,
    NotFound,
    ProposalLifecycleError,
)
from ..logger import get_logger

logger = get_logger(__name__)

Payload = Union[bytes, str]


# ══════════════════════════════════════════════════════════════════════
#  ENUMS
# ══════════════════════════════════════════════════════════════════════

class ProposalStage(IntEnum):
    """Lifecycle stage of a proposal."""
    PENDING = 0      # Voting window not yet open
    ACTIVE = 1       # Voting in progress
    SUCCEEDED = 2    # Voting closed, queue window open
    DEFEATED = 3     # Queued but failed quorum/majority
    QUEUED = 4       # Scheduled for execution
    EXECUTED = 5     # Calls dispatched successfully
    CANCELED = 6     # Canceled by an authorized caller


# Stages that are persisted once entered. Everything else is derived
# from the clock.
RECORDED_STAGES = frozenset({
    ProposalStage.QUEUED,
    ProposalStage.DEFEATED,
    ProposalStage.EXECUTED,
    ProposalStage.CANCELED,
})

TERMINAL_STAGES = frozenset({
    ProposalStage.DEFEATED,
    ProposalStage.EXECUTED,
    ProposalStage.CANCELED,
})

# Valid recorded transitions; None is the derived (unrecorded) state
_VALID_TRANSITIONS: Dict[Optional[ProposalStage], set] = {
    None:                    {ProposalStage.QUEUED, ProposalStage.CANCELED},
    ProposalStage.QUEUED:    {ProposalStage.EXECUTED, ProposalStage.DEFEATED,
                              ProposalStage.CANCELED},
    # Terminal stages: no further transitions
    ProposalStage.DEFEATED:  set(),
    ProposalStage.EXECUTED:  set(),
    ProposalStage.CANCELED:  set(),
}


# ══════════════════════════════════════════════════════════════════════
#  PAYLOAD
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProposalCall:
    """One encoded call performed when the proposal executes."""
    target: str
    value: int = 0
    signature: str = ""
    calldata: Payload = b""

    def to_dict(self) -> Dict[str, Any]:
        calldata = self.calldata
        if isinstance(calldata, (bytes, bytearray)):
            calldata = "0x" + bytes(calldata).hex()
        return {
            "target": self.target,
            "value": str(self.value),
            "signature": self.signature,
            "calldata": calldata,
        }


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


@dataclass(frozen=True)
class ProposalSpec:
    """
    Input to ``propose``.

    Fields:
        quorum:            Minimum weighted FOR votes to succeed
        calls:             Encoded calls dispatched on execution
        start_time:        Voting opens
        end_time:          Voting closes / queue window opens
        end_queued_time:   Queue deadline
        end_execute_time:  Execution deadline
    """
    quorum: int
    calls: Tuple[ProposalCall, ...]
    start_time: int
    end_time: int
    end_queued_time: int
    end_execute_time: int

    def validate(self) -> None:
        if isinstance(self.quorum, bool) or not isinstance(self.quorum, int):
            raise InvalidProposal(f"Quorum must be an integer (got {self.quorum!r})")
        if self.quorum <= 0:
            raise InvalidProposal(f"Quorum must be positive (got {self.quorum})")
        if not self.calls:
            raise InvalidProposal("Proposal must carry at least one call")
        for call in self.calls:
            if not call.target:
                raise InvalidProposal("Every call needs a target")
            if call.value < 0:
                raise InvalidProposal(f"Call value must be >= 0 (got {call.value})")
        if not (
            self.start_time <= self.end_time
            < self.end_queued_time
            < self.end_execute_time
        ):
            raise InvalidWindow(
                "Proposal windows must satisfy "
                "startTime <= endTime < endQueuedTime < endExecuteTime "
                f"(got {self.start_time}, {self.end_time}, "
                f"{self.end_queued_time}, {self.end_execute_time})"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProposalSpec":
        """
        Build from the contract-style camelCase payload.

        Scalar ``targets``/``values``/``signatures``/``calldatas`` describe
        a single call; lists describe several and must be equally long.
        """
        try:
            targets = _as_list(data["targets"])
            values = _as_list(data.get("values", [0] * len(targets)))
            signatures = _as_list(data.get("signatures", [""] * len(targets)))
            calldatas = _as_list(data.get("calldatas", [b""] * len(targets)))
            end_execute = data.get("endExecuteTime", data.get("endExcuteTime"))
            if end_execute is None:
                raise KeyError("endExecuteTime")
            quorum = int(data.get("quorum", 0))
            start_time = int(data["startTime"])
            end_time = int(data["endTime"])
            end_queued_time = int(data["endQueuedTime"])
            end_execute = int(end_execute)
            values = [int(v) for v in values]
        except KeyError as e:
            raise InvalidProposal(f"Missing proposal field: {e.args[0]}") from e
        except (TypeError, ValueError) as e:
            raise InvalidProposal(f"Malformed proposal field: {e}") from e

        if not (len(targets) == len(values) == len(signatures) == len(calldatas)):
            raise InvalidProposal(
                "Proposal function information arity mismatch "
                f"(targets={len(targets)}, values={len(values)}, "
                f"signatures={len(signatures)}, calldatas={len(calldatas)})"
            )

        calls = tuple(
            ProposalCall(target=t, value=v, signature=s, calldata=c)
            for t, v, s, c in zip(targets, values, signatures, calldatas)
        )
        return cls(
            quorum=quorum,
            calls=calls,
            start_time=start_time,
            end_time=end_time,
            end_queued_time=end_queued_time,
            end_execute_time=end_execute,
        )


# ══════════════════════════════════════════════════════════════════════
#  PROPOSAL
# ══════════════════════════════════════════════════════════════════════

@dataclass
class Proposal:
    """
    Governance proposal record.

    ``recorded_stage`` is None while the stage is derived from the clock;
    it is set once the proposal is queued, defeated, executed or canceled.
    """
    id: int
    proposer: str
    quorum: int
    calls: Tuple[ProposalCall, ...]
    start_time: int
    end_time: int
    end_queued_time: int
    end_execute_time: int
    created_at: int = 0
    for_votes: int = 0
    against_votes: int = 0
    voters: Set[str] = field(default_factory=set)
    recorded_stage: Optional[ProposalStage] = None
    executable_at: Optional[int] = None
    _history: List[Dict[str, Any]] = field(default_factory=list, repr=False)

    # ── Call payload views ────────────────────────────────────────────

    @property
    def targets(self) -> Tuple[str, ...]:
        return tuple(c.target for c in self.calls)

    @property
    def values(self) -> Tuple[int, ...]:
        return tuple(c.value for c in self.calls)

    @property
    def signatures(self) -> Tuple[str, ...]:
        return tuple(c.signature for c in self.calls)

    @property
    def calldatas(self) -> Tuple[Payload, ...]:
        return tuple(c.calldata for c in self.calls)

    # ── Properties ────────────────────────────────────────────────────

    @property
    def is_terminal(self) -> bool:
        return self.recorded_stage in TERMINAL_STAGES

    @property
    def meets_bar(self) -> bool:
        """FOR votes reach quorum and outnumber AGAINST votes."""
        return self.for_votes >= self.quorum and self.for_votes > self.against_votes

    @property
    def history(self) -> List[Dict[str, Any]]:
        return list(self._history)

    # ── State transitions ─────────────────────────────────────────────

    def record_stage(self, new_stage: ProposalStage, timestamp: int, reason: str = ""):
        """
        Persist a one-way stage.

        Raises ProposalLifecycleError on invalid transitions.
        """
        allowed = _VALID_TRANSITIONS.get(self.recorded_stage, set())
        if new_stage not in allowed:
            current = self.recorded_stage.name if self.recorded_stage is not None else "DERIVED"
            raise ProposalLifecycleError(
                f"Cannot transition from {current} → {new_stage.name}. "
                f"Allowed: {[s.name for s in allowed]}"
            )
        old = self.recorded_stage
        self._history.append({
            "from": old.name if old is not None else "DERIVED",
            "to": new_stage.name,
            "reason": reason,
            "timestamp": timestamp,
        })
        self.recorded_stage = new_stage
        logger.info(
            f"Proposal #{self.id}: "
            f"{old.name if old is not None else 'DERIVED'} → {new_stage.name} | {reason}"
        )

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "proposer": self.proposer,
            "quorum": self.quorum,
            "calls": [c.to_dict() for c in self.calls],
            "startTime": self.start_time,
            "endTime": self.end_time,
            "endQueuedTime": self.end_queued_time,
            "endExecuteTime": self.end_execute_time,
            "createdAt": self.created_at,
            "forVotes": self.for_votes,
            "againstVotes": self.against_votes,
            "voterCount": len(self.voters),
            "recordedStage": self.recorded_stage.name if self.recorded_stage is not None else None,
            "executableAt": self.executable_at,
            "historyLength": len(self._history),
        }

    def __repr__(self) -> str:
        stage = self.recorded_stage.name if self.recorded_stage is not None else "DERIVED"
        return (
            f"<Proposal #{self.id} proposer={self.proposer} "
            f"for={self.for_votes} against={self.against_votes} stage={stage}>"
        )


# ══════════════════════════════════════════════════════════════════════
#  STORE
# ══════════════════════════════════════════════════════════════════════

class ProposalStore:
    """
    Owns proposal records and the identifier counter.

    Identifiers start at 1 and are never reused; records are never deleted.
    """

    def __init__(self, first_id: int = GOVERNOR_FIRST_PROPOSAL_ID):
        self._next_id = first_id
        self._proposals: Dict[int, Proposal] = {}

    def create(self, spec: ProposalSpec, proposer: str, created_at: int) -> Proposal:
        """Validate *spec* and persist it under the next sequential id."""
        spec.validate()
        pid = self._next_id
        proposal = Proposal(
            id=pid,
            proposer=proposer,
            quorum=spec.quorum,
            calls=tuple(spec.calls),
            start_time=spec.start_time,
            end_time=spec.end_time,
            end_queued_time=spec.end_queued_time,
            end_execute_time=spec.end_execute_time,
            created_at=created_at,
        )
        self._proposals[pid] = proposal
        self._next_id += 1
        logger.info(
            f"Proposal #{pid} created by {proposer} "
            f"(quorum={spec.quorum}, calls={len(spec.calls)}, "
            f"voting {spec.start_time}..{spec.end_time})"
        )
        return proposal

    def get(self, proposal_id: int) -> Proposal:
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise NotFound(f"Proposal #{proposal_id} does not exist")
        return proposal

    def ids(self) -> Sequence[int]:
        return sorted(self._proposals)

    @property
    def count(self) -> int:
        return len(self._proposals)

    def __contains__(self, proposal_id: int) -> bool:
        return proposal_id in self._proposals

    def __len__(self) -> int:
        return len(self._proposals)

    def __repr__(self) -> str:
        return f"<ProposalStore proposals={len(self._proposals)} next_id={self._next_id}>"
