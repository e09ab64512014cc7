"""
Execution Engine

Implements:
  - ExecutionTarget: opaque call boundary (address, value, signature, calldata)
  - ContractRegistry: in-process target dispatching to Python contracts
  - ExecutionEngine: runs a queued proposal's calls all-or-nothing
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from ..abi import build_call_data, compute_function_selector, decode_function_call, parse_argument_types
from ..clock import Clock
from ..exceptions import ExecutionBlock, ExecutionFailed, NotExecutable
from ..logger import get_logger
from .access import normalize_identity
from .events import EventLog, ProposalExecuted
from .proposals import Payload, Proposal, ProposalStage, TERMINAL_STAGES

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  TARGET INTERFACE
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CallResult:
    """Outcome of one dispatched call."""
    success: bool
    output: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "output": repr(self.output), "error": self.error}


class ExecutionTarget(ABC):
    """
    Synchronous call boundary the engine dispatches proposal calls to.

    A plain target cannot undo a call, so the engine only runs
    single-call proposals against it. Multi-call proposals need a
    TransactionalTarget.
    """

    @abstractmethod
    def invoke(self, target: str, value: int, signature: str, calldata: Payload) -> CallResult:
        """Perform one call and report success or failure. Must not raise."""


class TransactionalTarget(ExecutionTarget):
    """Target whose state can be captured and rolled back."""

    @abstractmethod
    def snapshot(self) -> Any:
        """Capture the current state."""

    @abstractmethod
    def restore(self, snapshot: Any) -> None:
        """Return to a state captured by ``snapshot``."""


# ══════════════════════════════════════════════════════════════════════
#  CONTRACT REGISTRY
# ══════════════════════════════════════════════════════════════════════

def external(function_signature: str) -> Callable:
    """Expose a method to proposal calls under *function_signature*."""
    def decorator(fn: Callable) -> Callable:
        fn.__external_signature__ = function_signature.replace(" ", "")
        return fn
    return decorator


@dataclass
class _Entry:
    method: str
    signature: str
    arg_types: List[str] = field(default_factory=list)


class ContractRegistry(TransactionalTarget):
    """
    In-process execution target.

    Python objects registered at addresses receive calls on the methods
    decorated with ``@external``. Arguments are ABI-decoded according to
    the exposed signature.

    Snapshots deep-copy each contract's ``__dict__``. A contract holding
    state that cannot be copied (locks, handles, slots) provides
    ``snapshot_state()`` and ``restore_state(state)`` instead.
    """

    def __init__(self):
        self._contracts: Dict[str, Any] = {}
        self._tables: Dict[str, Dict[bytes, _Entry]] = {}
        self._balances: Dict[str, int] = {}

    def register(self, address: str, contract: Any) -> str:
        address = normalize_identity(address)
        table: Dict[bytes, _Entry] = {}
        for attr in dir(type(contract)):
            fn = getattr(type(contract), attr, None)
            sig = getattr(fn, "__external_signature__", None)
            if sig is None:
                continue
            table[compute_function_selector(sig)] = _Entry(
                method=attr, signature=sig, arg_types=parse_argument_types(sig)
            )
        self._contracts[address] = contract
        self._tables[address] = table
        self._balances.setdefault(address, 0)
        logger.info(
            f"Registered {type(contract).__name__} at {address} "
            f"({len(table)} entry points)"
        )
        return address

    def get(self, address: str) -> Any:
        return self._contracts.get(normalize_identity(address))

    def balance_of(self, address: str) -> int:
        return self._balances.get(normalize_identity(address), 0)

    def invoke(self, target: str, value: int, signature: str, calldata: Payload) -> CallResult:
        address = normalize_identity(target)
        contract = self._contracts.get(address)
        if contract is None:
            return CallResult(False, error=f"no contract at {address}")

        try:
            data = build_call_data(signature, calldata)
        except ValueError as e:
            return CallResult(False, error=f"bad call data: {e}")

        selector, raw_args = decode_function_call(data)
        entry = self._tables[address].get(selector)
        if entry is None:
            return CallResult(False, error=f"unknown selector 0x{selector.hex()}")

        try:
            args = decode(entry.arg_types, raw_args) if entry.arg_types else ()
        except DecodingError as e:
            return CallResult(False, error=f"cannot decode {entry.signature}: {e}")

        try:
            output = getattr(contract, entry.method)(*args)
        except Exception as e:
            logger.error(f"{entry.signature} reverted on {address}: {e}")
            return CallResult(False, error=str(e) or type(e).__name__)

        self._balances[address] = self._balances.get(address, 0) + value
        return CallResult(True, output=output)

    def snapshot(self) -> Tuple[Dict[str, Any], Dict[str, int]]:
        """Capture every contract's state; raises TypeError if one cannot be copied."""
        states = {}
        for addr, contract in self._contracts.items():
            hook = getattr(contract, "snapshot_state", None)
            if hook is not None:
                states[addr] = hook()
                continue
            try:
                states[addr] = copy.deepcopy(vars(contract))
            except TypeError as e:
                raise TypeError(
                    f"cannot snapshot {type(contract).__name__} at {addr}: {e}"
                ) from e
        return states, dict(self._balances)

    def restore(self, snapshot: Tuple[Dict[str, Any], Dict[str, int]]) -> None:
        states, balances = snapshot
        for addr, state in states.items():
            contract = self._contracts[addr]
            hook = getattr(contract, "restore_state", None)
            if hook is not None:
                hook(state)
                continue
            vars(contract).clear()
            vars(contract).update(copy.deepcopy(state))
        self._balances = dict(balances)

    def __repr__(self) -> str:
        return f"<ContractRegistry contracts={len(self._contracts)}>"


# ══════════════════════════════════════════════════════════════════════
#  EXECUTION ENGINE
# ══════════════════════════════════════════════════════════════════════

class ExecutionEngine:
    """
    Executes queued proposals.

    Checks:
        1. Proposal is QUEUED (not executed, canceled or defeated)
        2. The queue delay has elapsed
        3. The execution deadline has not passed
        4. The proposal is not already being dispatched
    Then dispatches every call; the first failure rolls the target back
    and leaves the proposal QUEUED.
    """

    def __init__(self, clock: Clock, events: EventLog, target: ExecutionTarget):
        self.clock = clock
        self.events = events
        self.target = target
        self._execution_log: List[Dict[str, Any]] = []
        self._in_flight: Set[int] = set()

    def is_executing(self, proposal_id: int) -> bool:
        return proposal_id in self._in_flight

    def check_executable(self, proposal: Proposal) -> int:
        """Return the current time or raise NotExecutable."""
        stage = proposal.recorded_stage
        now = self.clock.now()
        if proposal.id in self._in_flight:
            reason = ExecutionBlock.IN_PROGRESS
        elif stage in TERMINAL_STAGES:
            reason = ExecutionBlock.TERMINAL
        elif stage != ProposalStage.QUEUED:
            reason = ExecutionBlock.NOT_QUEUED
        elif now < proposal.executable_at:
            reason = ExecutionBlock.NOT_READY
        elif now >= proposal.end_execute_time:
            reason = ExecutionBlock.EXPIRED
        else:
            return now
        logger.warning(f"Proposal #{proposal.id}: execute rejected ({reason.name})")
        raise NotExecutable(proposal.id, reason)

    def execute(self, proposal: Proposal) -> List[CallResult]:
        now = self.check_executable(proposal)

        snapshot = None
        if isinstance(self.target, TransactionalTarget):
            try:
                snapshot = self.target.snapshot()
            except Exception as e:
                logger.error(f"Proposal #{proposal.id}: cannot capture target state ({e})")
                raise ExecutionFailed(proposal.id, None, str(e)) from e
        elif len(proposal.calls) > 1:
            logger.error(
                f"Proposal #{proposal.id}: {len(proposal.calls)} calls need a "
                f"transactional target"
            )
            raise ExecutionFailed(
                proposal.id, None, "target cannot roll back a multi-call proposal"
            )

        self._in_flight.add(proposal.id)
        results: List[CallResult] = []
        try:
            for index, call in enumerate(proposal.calls):
                result = self.target.invoke(call.target, call.value, call.signature, call.calldata)
                if not result.success:
                    logger.error(
                        f"Proposal #{proposal.id}: call {index} to {call.target} failed "
                        f"({result.error}); proposal stays QUEUED"
                    )
                    raise ExecutionFailed(proposal.id, index, result.error)
                results.append(result)
        except Exception:
            if snapshot is not None:
                self.target.restore(snapshot)
            raise
        finally:
            self._in_flight.discard(proposal.id)

        proposal.record_stage(ProposalStage.EXECUTED, now, f"{len(results)} call(s) dispatched")
        self._execution_log.append({
            "proposalId": proposal.id,
            "calls": [c.to_dict() for c in proposal.calls],
            "results": [r.to_dict() for r in results],
            "executedAt": now,
        })
        logger.info(f"Proposal #{proposal.id} EXECUTED ({len(results)} call(s))")
        self.events.emit(ProposalExecuted(proposal.id))
        return results

    @property
    def execution_log(self) -> List[Dict[str, Any]]:
        return list(self._execution_log)

    def execution_count(self) -> int:
        return len(self._execution_log)

    def __repr__(self) -> str:
        return f"<ExecutionEngine executed={len(self._execution_log)}>"
