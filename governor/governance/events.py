"""
Governance events

Audit-log records emitted after each successful state change, in order.
Field order of every event is part of the compatibility contract.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from ..logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProposalCreated:
    """Emitted by ``propose``."""
    proposal_id: int
    targets: Tuple[str, ...]
    values: Tuple[int, ...]
    signatures: Tuple[str, ...]
    calldatas: Tuple[Any, ...]
    start_time: int
    end_time: int

    name = "ProposalCreated"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "id": self.proposal_id,
            "targets": list(self.targets),
            "values": [str(v) for v in self.values],
            "signatures": list(self.signatures),
            "calldatas": [
                "0x" + c.hex() if isinstance(c, (bytes, bytearray)) else c
                for c in self.calldatas
            ],
            "startTime": self.start_time,
            "endTime": self.end_time,
        }


@dataclass(frozen=True)
class VoteCast:
    """Emitted by ``castVote``; ``votes`` is the running total for that side."""
    voter: str
    proposal_id: int
    support: bool
    votes: int

    name = "VoteCast"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "voter": self.voter,
            "proposalId": self.proposal_id,
            "support": self.support,
            "votes": self.votes,
        }


@dataclass(frozen=True)
class ProposalQueued:
    proposal_id: int
    executable_at: int

    name = "ProposalQueued"

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, "id": self.proposal_id, "eta": self.executable_at}


@dataclass(frozen=True)
class ProposalDefeated:
    proposal_id: int

    name = "ProposalDefeated"

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, "id": self.proposal_id}


@dataclass(frozen=True)
class ProposalExecuted:
    proposal_id: int

    name = "ProposalExecuted"

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, "id": self.proposal_id}


@dataclass(frozen=True)
class ProposalCanceled:
    proposal_id: int

    name = "ProposalCanceled"

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, "id": self.proposal_id}


GovernanceEvent = Any
E = TypeVar("E")


# ══════════════════════════════════════════════════════════════════════
#  EVENT LOG
# ══════════════════════════════════════════════════════════════════════

class EventLog:
    """
    Ordered, append-only record of emitted events with subscriber fan-out.

    Subscribers run after the event is recorded. A failing subscriber is
    logged and does not affect the committed state change or the other
    subscribers.
    """

    def __init__(self):
        self._events: List[GovernanceEvent] = []
        self._subscribers: List[Callable[[GovernanceEvent], None]] = []

    def subscribe(self, callback: Callable[[GovernanceEvent], None]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[GovernanceEvent], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def emit(self, event: GovernanceEvent) -> None:
        self._events.append(event)
        logger.debug(f"Event {event.name}: {event.to_dict()}")
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception(f"Subscriber {callback!r} failed on {event.name}")

    def of_type(self, event_type: Type[E]) -> List[E]:
        return [e for e in self._events if isinstance(e, event_type)]

    @property
    def last(self) -> Optional[GovernanceEvent]:
        return self._events[-1] if self._events else None

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self._events]

    def __iter__(self):
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)

    def __repr__(self) -> str:
        return f"<EventLog events={len(self._events)} subscribers={len(self._subscribers)}>"
