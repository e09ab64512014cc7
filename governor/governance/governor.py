"""
Governor

Single entry point composing access control, the proposal store, voting,
outcome resolution, scheduling and execution. Method names follow the
contract entry points; every mutating call takes the caller identity
first and runs under one lock, so each call is applied whole or not at
all.
"""

import copy
import threading
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from ..clock import Clock, SystemClock
from ..config import GovernorConfig, load_config
from ..exceptions import AlreadyInitialized, NotCancelable, NotDefeated, NotInitialized
from ..logger import get_logger, set_log_level
from .access import AccessControl, normalize_identity
from .events import EventLog, ProposalCanceled, ProposalCreated
from .execution import CallResult, ContractRegistry, ExecutionEngine, ExecutionTarget
from .proposals import Proposal, ProposalSpec, ProposalStage, ProposalStore, TERMINAL_STAGES
from .resolver import OutcomeResolver
from .scheduler import Scheduler
from .voting import VoteReceipt, VotingModule, WeightFn, constant_weight

logger = get_logger(__name__)


class Governor:
    """
    Time-gated governance engine.

    Lifecycle of a proposal:
        propose → (vote while ACTIVE) → queue once voting closed
                → execute after the queue delay, before the deadline
        A queued proposal that missed its bar can be marked defeated;
        any proposal not yet executed, canceled or defeated can be canceled.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        target: Optional[ExecutionTarget] = None,
        get_weight_fn: Optional[WeightFn] = None,
        config: Optional[GovernorConfig] = None,
    ):
        self.config = config or GovernorConfig()
        self.clock = clock or SystemClock()
        self.target = target if target is not None else ContractRegistry()
        self.events = EventLog()

        self.resolver = OutcomeResolver(self.clock, self.events)
        self.voting = VotingModule(
            self.resolver,
            self.events,
            get_weight_fn or constant_weight(self.config.default_vote_weight),
        )
        self.scheduler = Scheduler(self.resolver, self.events, self.config.execution_delay)
        self.executor = ExecutionEngine(self.clock, self.events, self.target)

        self._lock = threading.RLock()
        self._access: Optional[AccessControl] = None
        self._store: Optional[ProposalStore] = None

    @classmethod
    def from_config(cls, path: Optional[str] = None, **kwargs) -> "Governor":
        """Build from governor.toml; initializes when an admin is configured."""
        config = load_config(path)
        if config.log_level:
            set_log_level(config.log_level)
        governor = cls(config=config, **kwargs)
        if config.admin:
            governor.initialize(config.admin)
        return governor

    # ── Initialization ────────────────────────────────────────────────

    def initialize(self, caller: str, governors: Iterable[str] = ()) -> None:
        """One-time setup: *caller* becomes admin, the id counter starts."""
        with self._lock:
            if self._access is not None:
                raise AlreadyInitialized("Governor is already initialized")
            self._access = AccessControl(caller, list(self.config.governors) + list(governors))
            self._store = ProposalStore()
            logger.info(f"Governor initialized (admin={self._access.admin})")

    @property
    def initialized(self) -> bool:
        return self._access is not None

    @property
    def access(self) -> AccessControl:
        self._require_initialized()
        return self._access

    def _require_initialized(self) -> None:
        if self._access is None:
            raise NotInitialized("Governor has not been initialized")

    def _get(self, proposal_id: int) -> Proposal:
        self._require_initialized()
        return self._store.get(proposal_id)

    # ── Mutating entry points ─────────────────────────────────────────

    def propose(self, caller: str, spec: Union[ProposalSpec, Mapping[str, Any]]) -> int:
        with self._lock:
            self._require_initialized()
            proposer = self._access.require_authorized(caller, "propose")
            if not isinstance(spec, ProposalSpec):
                spec = ProposalSpec.from_dict(spec)
            proposal = self._store.create(spec, proposer, self.clock.now())
            self.events.emit(ProposalCreated(
                proposal.id,
                proposal.targets,
                proposal.values,
                proposal.signatures,
                proposal.calldatas,
                proposal.start_time,
                proposal.end_time,
            ))
            return proposal.id

    def cast_vote(self, caller: str, proposal_id: int, support: bool) -> VoteReceipt:
        with self._lock:
            proposal = self._get(proposal_id)
            return self.voting.cast_vote(proposal, caller, support)

    def queue(self, caller: str, proposal_id: int) -> int:
        with self._lock:
            proposal = self._get(proposal_id)
            logger.debug(f"Queue of Proposal #{proposal_id} requested by {normalize_identity(caller)}")
            return self.scheduler.queue(proposal)

    def defeated(self, caller: str, proposal_id: int) -> None:
        with self._lock:
            proposal = self._get(proposal_id)
            logger.debug(f"Defeat of Proposal #{proposal_id} requested by {normalize_identity(caller)}")
            if self.executor.is_executing(proposal_id):
                raise NotDefeated(f"Proposal #{proposal_id} is being executed")
            self.resolver.mark_defeated(proposal)

    def execute(self, caller: str, proposal_id: int) -> List[CallResult]:
        with self._lock:
            proposal = self._get(proposal_id)
            logger.debug(f"Execution of Proposal #{proposal_id} requested by {normalize_identity(caller)}")
            return self.executor.execute(proposal)

    def cancel(self, caller: str, proposal_id: int) -> None:
        with self._lock:
            self._require_initialized()
            canceler = self._access.require_authorized(caller, "cancel")
            proposal = self._store.get(proposal_id)
            if self.executor.is_executing(proposal_id):
                raise NotCancelable(f"Proposal #{proposal_id} is being executed")
            if proposal.recorded_stage in TERMINAL_STAGES:
                logger.warning(
                    f"Proposal #{proposal_id}: cancel rejected "
                    f"(stage={proposal.recorded_stage.name})"
                )
                raise NotCancelable(
                    f"Proposal #{proposal_id} cannot be canceled "
                    f"(stage={proposal.recorded_stage.name})"
                )
            proposal.record_stage(
                ProposalStage.CANCELED, self.clock.now(), f"Canceled by {canceler}"
            )
            self.events.emit(ProposalCanceled(proposal_id))

    # ── Queries ───────────────────────────────────────────────────────

    def state(self, proposal_id: int) -> ProposalStage:
        with self._lock:
            return self.resolver.state(self._get(proposal_id))

    def get_proposal(self, proposal_id: int) -> Proposal:
        """Detached copy of the record; changing it does not affect the engine."""
        with self._lock:
            return copy.deepcopy(self._get(proposal_id))

    def get_actions(self, proposal_id: int) -> Tuple[tuple, tuple, tuple, tuple]:
        proposal = self._get(proposal_id)
        return proposal.targets, proposal.values, proposal.signatures, proposal.calldatas

    def get_receipt(self, proposal_id: int, voter: str) -> VoteReceipt:
        self._get(proposal_id)
        return self.voting.get_receipt(proposal_id, voter)

    @property
    def proposal_count(self) -> int:
        self._require_initialized()
        return self._store.count

    def __repr__(self) -> str:
        count = self._store.count if self._store is not None else 0
        return f"<Governor initialized={self.initialized} proposals={count}>"
